import xml.etree.ElementTree as ET
from typing import List, Optional

# SECURITY: content.xml comes from uploaded archives, so entity expansion is refused
from defusedxml import ElementTree as DefusedET
from defusedxml import DefusedXmlException

from siq_converter.errors import InvalidXmlError


def local_name(elem: ET.Element) -> str:
    """Return the tag of ``elem`` without its ``{namespace}`` prefix."""
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def parse_content(xml_text: str) -> ET.Element:
    """Parse an SIQ content document and return its root element.

    Raises:
        InvalidXmlError: If the text is not well-formed XML.
    """
    try:
        return DefusedET.fromstring(xml_text)
    except (DefusedET.ParseError, DefusedXmlException) as e:
        raise InvalidXmlError(f"Invalid SIQ XML: {str(e)}")


def child_elements(node: ET.Element, name: Optional[str] = None) -> List[ET.Element]:
    """Direct element children of ``node``, optionally only those named ``name``.

    Comments and processing instructions are skipped and namespaces are
    ignored when matching ``name``.
    """
    elements = [child for child in node if isinstance(child.tag, str)]
    if name is None:
        return elements
    return [child for child in elements if local_name(child) == name]


def first_child(node: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if node is None:
        return None
    children = child_elements(node, name)
    return children[0] if children else None


def get_text(elem: Optional[ET.Element]) -> Optional[str]:
    """Stripped text content of ``elem`` and its descendants, or None if blank."""
    if elem is None:
        return None
    value = "".join(elem.itertext()).strip()
    return value or None


def get_attr(elem: ET.Element, name: str) -> Optional[str]:
    """Attribute value of ``elem``, treating an empty value as missing."""
    value = elem.get(name)
    return value or None
