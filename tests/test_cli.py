import io
import json
import tempfile
import unittest
import zipfile
from contextlib import redirect_stderr
from pathlib import Path

from siq_converter.cli import main, build_file_name, is_safe_member_name, resolve_output_file
from siq_converter.models import Pack

from siq_fixtures import build_archive, sample_archive, minimal_content, single_question, corrupt_payload, PIC_BYTES


class TestHelpers(unittest.TestCase):
    def test_build_file_name(self):
        self.assertEqual("friday-quiz.json", build_file_name("Friday   Quiz"))
        self.assertEqual("pack.json", build_file_name(""))

    def test_build_file_name_drops_path_characters(self):
        self.assertEqual("escaped.json", build_file_name("../../escaped"))
        self.assertEqual("a-b-c.json", build_file_name("a\\b/c"))
        self.assertEqual("pack.json", build_file_name(".."))

    def test_output_named_after_pack_stays_in_directory(self):
        output = Path("out")
        target = resolve_output_file(Pack(author="A", name="../../escaped"), output, False)
        self.assertEqual(output, target.parent)

    def test_duplicate_names_get_suffix(self):
        taken = set()
        pack = Pack(author="A", name="Converted pack")
        first = resolve_output_file(pack, Path("out"), False, taken=taken)
        second = resolve_output_file(pack, Path("out"), False, taken=taken)
        self.assertEqual(["converted-pack.json", "converted-pack-2.json"], [first.name, second.name])

    def test_is_safe_member_name(self):
        self.assertTrue(is_safe_member_name("Images/pic.jpg"))
        self.assertFalse(is_safe_member_name("../evil.txt"))
        self.assertFalse(is_safe_member_name("Images/../../evil.txt"))
        self.assertFalse(is_safe_member_name("/etc/passwd"))
        self.assertFalse(is_safe_member_name("C:/Windows/evil.dll"))
        self.assertFalse(is_safe_member_name(""))


class TestConvertCommand(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, data):
        path = self.root / name
        path.write_bytes(data)
        return path

    def test_single_archive_to_json_file(self):
        archive = self.write("quiz.siq", sample_archive())
        output = self.root / "out" / "quiz.json"
        main(["convert", str(archive), str(output)])

        data = json.loads(output.read_text(encoding="utf-8"))
        self.assertEqual("Friday Quiz", data["name"])
        self.assertEqual(2, len(data["rounds"]))

    def test_directory_of_archives(self):
        inputs = self.root / "in"
        inputs.mkdir()
        (inputs / "quiz.siq").write_bytes(sample_archive())
        (inputs / "notes.txt").write_text("ignored")
        output = self.root / "out"

        main(["convert", str(inputs), str(output)])
        self.assertEqual(["quiz.json"], sorted(p.name for p in output.iterdir()))

    def test_hostile_pack_name_stays_in_output_directory(self):
        inputs = self.root / "in"
        inputs.mkdir()
        content = minimal_content("<rounds><round/></rounds>", attrs='name="../../escaped"')
        (inputs / "evil.siq").write_bytes(build_archive({"content.xml": content}))
        output = self.root / "deep" / "packs"

        main(["convert", str(inputs), str(output)])
        self.assertEqual(["evil.json"], sorted(p.name for p in output.iterdir()))
        self.assertFalse((self.root / "escaped.json").exists())

    def test_same_pack_name_in_directory_keeps_both(self):
        inputs = self.root / "in"
        inputs.mkdir()
        content = minimal_content("<rounds><round/></rounds>")
        (inputs / "a.siq").write_bytes(build_archive({"content.xml": content}))
        (inputs / "b.siq").write_bytes(build_archive({"content.xml": content}))
        (inputs / "B.zip").write_bytes(build_archive({"content.xml": content}))
        output = self.root / "out"

        main(["convert", str(inputs), str(output)])
        self.assertEqual(["a.json", "b-2.json", "b.json"], sorted(p.name for p in output.iterdir()))

    def test_unreadable_media_member_still_converts(self):
        content = single_question(
            '<question><params><param name="question">'
            '<item type="image">pic.jpg</item></param></params></question>'
        )
        archive = corrupt_payload(
            build_archive({"content.xml": content, "Images/pic.jpg": PIC_BYTES}), PIC_BYTES
        )
        path = self.write("damaged.siq", archive)
        output = self.root / "damaged.json"

        main(["convert", str(path), str(output)])
        data = json.loads(output.read_text(encoding="utf-8"))
        rules = data["rounds"][0]["themes"][0]["questions"][0]["rules"]
        self.assertEqual(["pic.jpg"], [r["content"] for r in rules])

    def test_failed_conversion_exits_non_zero(self):
        archive = self.write("broken.siq", build_archive({"Images/pic.jpg": PIC_BYTES}))
        stderr = io.StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            main(["convert", str(archive), str(self.root / "out.json")])
        self.assertEqual(1, ctx.exception.code)
        self.assertIn(f"Failed to convert SIQ package {archive}.", stderr.getvalue())
        self.assertFalse((self.root / "out.json").exists())

    def test_missing_input(self):
        with self.assertRaises(SystemExit) as ctx:
            main(["convert", str(self.root / "nope.siq")])
        self.assertEqual(1, ctx.exception.code)

    def test_no_command(self):
        with self.assertRaises(SystemExit):
            main([])


class TestUnpackCommand(unittest.TestCase):
    def test_unpack_skips_unsafe_entries(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            archive = root / "quiz.siq"
            with zipfile.ZipFile(archive, "w") as zf:
                zf.writestr("content.xml", "<package/>")
                zf.writestr("Images/pic.jpg", PIC_BYTES)
                zf.writestr("../escape.txt", "nope")

            main(["unpack", str(archive), str(root / "unpacked")])

            target = root / "unpacked" / "quiz"
            self.assertTrue((target / "content.xml").exists())
            self.assertEqual(PIC_BYTES, (target / "Images" / "pic.jpg").read_bytes())
            self.assertFalse((root / "unpacked" / "escape.txt").exists())


if __name__ == "__main__":
    unittest.main()
