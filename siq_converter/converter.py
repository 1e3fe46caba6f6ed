import html
import logging
import math
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Union, BinaryIO

import requests

from siq_converter.errors import NoRoundsError, UnexpectedRootError
from siq_converter.media import MEDIA_TYPES
from siq_converter.models import (
    Pack, Round, Theme, Question, Price, Rule, QuestionType, Number
)
from siq_converter.sources import ArchiveSource, RemoteSource, SIQSource
from siq_converter.xml_parser import (
    child_elements, first_child, get_attr, get_text, local_name, parse_content
)

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "SIQ Import"
DEFAULT_PACK_NAME = "Converted pack"
DEFAULT_ROUND_NAME = "Round"
DEFAULT_THEME_NAME = "Untitled Theme"
DEFAULT_BASE_URL = "/siq"


class IdCounter:
    """Monotonic id source shared by one conversion run."""

    def __init__(self, start: int = 1):
        self.current = start

    def next(self) -> int:
        value = self.current
        self.current += 1
        return value


def _parse_number(raw: str) -> Optional[Number]:
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def _info_text(node: ET.Element) -> Optional[str]:
    """Text of the node's ``info/comments`` child, if any."""
    return get_text(first_child(first_child(node, "info"), "comments"))


def _media_rule(media_type: str, data_uri: str, file_name: str) -> Rule:
    if media_type == "audio":
        return Rule.embedded(f'<audio controls autoplay src="{data_uri}"></audio>')
    if media_type == "video":
        return Rule.embedded(
            f'<video controls autoplay style="max-width: 100%;" src="{data_uri}"></video>'
        )
    alt = html.escape(file_name, quote=True)
    return Rule.embedded(f'<img src="{data_uri}" alt="{alt}" />')


class SIQConverter:
    """Converts an SIQ content document into a :class:`Pack`.

    A converter owns its id counters, so each instance performs exactly one
    conversion; :func:`convert_source` creates a fresh one per call.
    """

    def __init__(self, source: SIQSource):
        self.source = source
        self.question_ids = IdCounter()
        self.theme_ids = IdCounter()

    def convert(self) -> Pack:
        root = parse_content(self.source.load_content_xml())
        return self.convert_document(root)

    def convert_document(self, root: ET.Element) -> Pack:
        """Build a pack from a parsed content document.

        Raises:
            UnexpectedRootError: If the root element is not ``package``.
            NoRoundsError: If ``rounds`` holds no ``round`` element.
        """
        if local_name(root) != "package":
            raise UnexpectedRootError(local_name(root))

        authors = first_child(first_child(root, "info"), "authors")
        author = get_text(first_child(authors if authors is not None else root, "author"))
        name = get_attr(root, "name") or DEFAULT_PACK_NAME

        rounds_node = first_child(root, "rounds")
        round_nodes = child_elements(rounds_node, "round") if rounds_node is not None else []
        if not round_nodes:
            raise NoRoundsError("No rounds found in SIQ package.")

        rounds = [self.convert_round(node) for node in round_nodes]
        logger.info(
            "Converted SIQ package '%s': %d rounds, %d themes, %d questions",
            name, len(rounds), self.theme_ids.current - 1, self.question_ids.current - 1
        )
        return Pack(author=author or DEFAULT_AUTHOR, name=name, rounds=rounds)

    def convert_round(self, round_node: ET.Element) -> Round:
        name = get_attr(round_node, "name") or DEFAULT_ROUND_NAME
        logger.debug("Converting round '%s'", name)

        themes_node = first_child(round_node, "themes")
        theme_nodes = child_elements(themes_node, "theme") if themes_node is not None else []
        return Round(name=name, themes=[self.convert_theme(node) for node in theme_nodes])

    def convert_theme(self, theme_node: ET.Element) -> Theme:
        name = get_attr(theme_node, "name") or DEFAULT_THEME_NAME
        description = _info_text(theme_node)

        questions_node = first_child(theme_node, "questions")
        question_nodes = child_elements(questions_node, "question") if questions_node is not None else []
        questions = [self.convert_question(node) for node in question_nodes]

        # TODO: map the package's ordered-theme flag once its SIQ encoding is confirmed
        return Theme(
            id=self.theme_ids.next(),
            name=name,
            description=description,
            ordered=False,
            questions=questions,
        )

    def convert_question(self, question_node: ET.Element) -> Question:
        params_node = first_child(question_node, "params")
        params = child_elements(params_node, "param") if params_node is not None else []

        question_param = next((p for p in params if p.get("name") == "question"), None)
        answer_param = next((p for p in params if p.get("name") == "answer"), None)

        rules: List[Rule] = []
        if question_param is not None:
            rules.extend(self.params_to_rules(question_param))

        comments = _info_text(question_node)
        if comments:
            rules.append(Rule.embedded(comments))

        after_round: List[Rule] = []
        if answer_param is not None:
            after_round.extend(self.params_to_rules(answer_param))

        right_node = first_child(question_node, "right")
        answers = child_elements(right_node, "answer") if right_node is not None else []
        for answer in answers:
            content = get_text(answer)
            if content:
                after_round.append(Rule.embedded(content))

        type_attr = (question_node.get("type") or "").lower()
        if type_attr == "secret":
            question_type = QuestionType.SECRET
        elif type_attr == "empty":
            question_type = QuestionType.EMPTY
        else:
            question_type = QuestionType.NORMAL

        return Question(
            id=self.question_ids.next(),
            type=question_type,
            price=extract_price(question_node, params),
            rules=rules,
            after_round=after_round,
        )

    def params_to_rules(self, param_node: ET.Element) -> List[Rule]:
        """Flatten a ``param`` and its nested params into rules.

        Nested ``param`` children come first in document order, followed by
        the node's own ``item`` children.
        """
        rules: List[Rule] = []
        for nested in child_elements(param_node, "param"):
            rules.extend(self.params_to_rules(nested))

        for item in child_elements(param_node, "item"):
            rule = self.item_to_rule(item)
            if rule is not None:
                rules.append(rule)
        return rules

    def item_to_rule(self, item: ET.Element) -> Optional[Rule]:
        raw_type = (item.get("type") or "").lower()
        content = get_text(item) or ""

        if raw_type in MEDIA_TYPES:
            if not content:
                return None
            data_uri = self.source.load_media(raw_type, content)
            if data_uri:
                return _media_rule(raw_type, data_uri, content)
            # Keep the reference visible rather than dropping the item
            return Rule.embedded(content)

        if not content:
            return None
        return Rule.embedded(content)


def extract_price(question_node: ET.Element, params: List[ET.Element]) -> Price:
    raw_text = get_attr(question_node, "price") or "0"
    value = _parse_number(raw_text)

    number_set_param = next(
        (p for p in params if p.get("name") == "price" and p.get("type") == "numberSet"),
        None
    )
    number_set = first_child(number_set_param, "numberSet")
    minimum = get_attr(number_set, "minimum") if number_set is not None else None
    maximum = get_attr(number_set, "maximum") if number_set is not None else None
    random_range = f"{minimum}-{maximum}" if minimum and maximum else "null"

    return Price(
        text=raw_text,
        correct=value if value is not None else 0,
        incorrect=-abs(value) if value is not None else 0,
        random_range=random_range,
    )


def convert_source(source: SIQSource) -> Pack:
    """Convert the package behind ``source`` into a pack."""
    return SIQConverter(source).convert()


def convert_siq_from_file(archive: Union[bytes, bytearray, str, Path, BinaryIO]) -> Pack:
    """Convert an uploaded SIQ archive (bytes, path, or binary file object)."""
    with ArchiveSource(archive) as source:
        return convert_source(source)


def convert_siq_from_url(base_url: str = DEFAULT_BASE_URL,
                         session: Optional[requests.Session] = None,
                         timeout: Optional[float] = None) -> Pack:
    """Convert an SIQ package unpacked into a directory served over HTTP."""
    return convert_source(RemoteSource(base_url, session=session, timeout=timeout))
