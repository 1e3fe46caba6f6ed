import argparse
import json
import logging
import re
import sys
import zipfile
from pathlib import Path
from typing import List, Optional, Set

from siq_converter.converter import convert_siq_from_file, convert_siq_from_url
from siq_converter.errors import ConversionError
from siq_converter.models import Pack

ARCHIVE_SUFFIXES = ('.siq', '.zip')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert and unpack SIQ quiz packages"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output"
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Convert command
    convert_parser = subparsers.add_parser('convert', help='Convert SIQ packages to pack JSON files')
    convert_parser.add_argument(
        "input",
        type=str,
        help="Path to .siq file, directory containing .siq files, or http(s) URL of an unpacked package"
    )
    convert_parser.add_argument(
        "output",
        type=Path,
        help="JSON file to write, or directory receiving one JSON file per package",
        nargs="?",
        default=Path("packs")
    )
    convert_parser.add_argument(
        "--timeout", type=float, help="Timeout in seconds for each HTTP request", default=None
    )
    convert_parser.add_argument(
        "--indent", type=int, help="JSON indentation", default=2
    )

    # Unpack command
    unpack_parser = subparsers.add_parser('unpack', help='Unpack SIQ packages to directories')
    unpack_parser.add_argument(
        "input",
        type=str,
        help="Path to .siq file(s) or directory containing .siq files"
    )
    unpack_parser.add_argument(
        "output",
        type=Path,
        help="Base directory to write unpacked files. Each package will create its own subdirectory",
        nargs="?",
        default=Path("unpacked")
    )

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def build_file_name(name: str) -> str:
    """File name a pack is saved under, derived from its name.

    Anything other than word characters, dots and dashes becomes a dash, so
    the result never contains a path separator.
    """
    slug = re.sub(r'\s+', '-', name.lower()) if name else ''
    slug = re.sub(r'[^\w.-]', '-', slug).strip('.-')
    return f"{slug or 'pack'}.json"


def is_safe_member_name(member: str) -> bool:
    """Reject zip member names that would escape the extraction directory."""
    if not member:
        return False
    if member.startswith('/') or member.startswith('\\'):
        return False
    # Windows drive letters
    if len(member) >= 2 and member[1] == ':':
        return False
    parts = member.replace('\\', '/').split('/')
    if '..' in parts:
        return False
    if '\0' in member:
        return False
    return True


def is_url(value: str) -> bool:
    return value.startswith('http://') or value.startswith('https://')


def write_pack(pack: Pack, output_file: Path, indent: int) -> None:
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(pack.to_dict(), f, indent=indent, ensure_ascii=False)


def resolve_output_file(pack: Pack, output_path: Path, single: bool,
                        stem: Optional[str] = None, taken: Optional[Set[str]] = None) -> Path:
    """Path the pack's JSON is written to.

    Outputs are keyed on the archive stem when there is one, falling back to
    the pack name for remote packages. Names already in ``taken`` get a
    numeric suffix so one run never overwrites its own output.
    """
    if single and output_path.suffix.lower() == '.json':
        return output_path

    file_name = build_file_name(stem or pack.name)
    if taken is not None:
        base = file_name[:-len('.json')]
        counter = 2
        while file_name in taken:
            file_name = f"{base}-{counter}.json"
            counter += 1
        taken.add(file_name)
    return output_path / file_name


def convert_single(source: str, output_path: Path, single: bool, timeout: Optional[float], indent: int,
                   taken: Optional[Set[str]] = None) -> bool:
    """Convert one package and write its JSON. Returns False on failure."""
    try:
        if is_url(source):
            pack = convert_siq_from_url(source, timeout=timeout)
            stem = None
        else:
            pack = convert_siq_from_file(Path(source))
            stem = Path(source).stem
    except ConversionError as e:
        print(f"Failed to convert SIQ package {source}. {str(e)}", file=sys.stderr)
        return False

    output_file = resolve_output_file(pack, output_path, single, stem, taken)
    write_pack(pack, output_file, indent)
    print(f"Created {output_file}")
    return True


def collect_archives(input_path: Path) -> List[Path]:
    if input_path.is_dir():
        return sorted(
            p for p in input_path.iterdir()
            if p.is_file() and p.suffix.lower() in ARCHIVE_SUFFIXES
        )
    return [input_path]


def unpack_package(input_path: Path, output_path: Path) -> None:
    """Unpack a single SIQ package to a directory."""
    package_output = output_path / input_path.stem
    package_output.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(input_path, 'r') as zf:
        for member in zf.infolist():
            if not is_safe_member_name(member.filename):
                print(f"Skipping unsafe entry {member.filename!r} in {input_path}", file=sys.stderr)
                continue
            zf.extract(member, package_output)

    print(f"Unpacked {input_path} to {package_output}")


def run_convert(args) -> int:
    if is_url(args.input):
        ok = convert_single(args.input, args.output, True, args.timeout, args.indent)
        return 0 if ok else 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input path not found: {input_path}", file=sys.stderr)
        return 1

    archives = collect_archives(input_path)
    if not archives:
        print(f"No .siq files found in: {input_path}", file=sys.stderr)
        return 1

    single = not input_path.is_dir()
    taken: Set[str] = set()
    failures = 0
    for archive in archives:
        if not convert_single(str(archive), args.output, single, args.timeout, args.indent, taken):
            failures += 1
    return 1 if failures else 0


def run_unpack(args) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input path not found: {input_path}", file=sys.stderr)
        return 1

    archives = collect_archives(input_path)
    if not archives:
        print(f"No .siq files found in: {input_path}", file=sys.stderr)
        return 1

    args.output.mkdir(parents=True, exist_ok=True)
    for archive in archives:
        try:
            unpack_package(archive, args.output)
        except zipfile.BadZipFile as e:
            print(f"Error unpacking package {archive}: {str(e)}", file=sys.stderr)
            return 1
    return 0


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)

    if not args.command:
        print("Error: No command specified. Use 'convert' or 'unpack'.", file=sys.stderr)
        sys.exit(1)

    if args.command == 'convert':
        code = run_convert(args)
    else:
        code = run_unpack(args)

    if code:
        sys.exit(code)


if __name__ == '__main__':
    main()
