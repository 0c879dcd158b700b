"""
Entry point for parsing JUnit-style XML reports.

A report file holds one of three shapes:
  * a wrapper element (e.g. <testsuites>) around suite elements,
  * a single suite element as the document root,
  * several suite documents written back to back with no common root.

All three produce an ordered list of SuiteRecord. Only input that is not
well-formed markup raises an error; everything else degrades.
"""

import codecs
import logging
import re
from os import PathLike
from pathlib import Path
from typing import Iterator, Optional, Union
from xml.etree import ElementTree as ET
from xml.etree.ElementTree import Element

from .dialects import Dialect, children, load_dialect, local_name
from .models import SuiteRecord
from .suite_extractor import extract_suite, has_suite_level_failure
from .text_capture import DEFAULT_LIMIT, TextCapturePolicy

logger = logging.getLogger(__name__)

_XML_DECLARATION = re.compile(rb"<\?xml\s[^>]*\?>")
# CDATA sections and comments are matched whole so declarations quoted in
# captured output are left alone; only group 1 is removed.
_DOCUMENT_DECLARATIONS = re.compile(
    rb"<!\[CDATA\[.*?\]\]>|<!--.*?-->"
    rb"|(<\?xml\s[^>]*\?>|<!DOCTYPE[^>\[]*(?:\[[^\]]*\])?\s*>)",
    re.DOTALL,
)
_CONCATENATED_ROOT = b"concatenated-reports"


class MalformedReportError(Exception):
    """The report is not well-formed markup and cannot be parsed at all."""

    def __init__(self, path: Union[str, PathLike], cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause}")


def _parse_concatenated(data: bytes) -> Optional[Element]:
    """Parse back-to-back documents as the children of one synthetic root.

    Returns None unless the content really is a run of elements with only
    whitespace between them.
    """
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8):]
    declaration = _XML_DECLARATION.match(data.lstrip())
    body = _DOCUMENT_DECLARATIONS.sub(lambda m: b"" if m.group(1) else m.group(0), data)
    prolog = declaration.group(0) if declaration else b""
    try:
        root = ET.fromstring(
            prolog + b"<" + _CONCATENATED_ROOT + b">" + body + b"</" + _CONCATENATED_ROOT + b">"
        )
    except ET.ParseError:
        return None
    stray = [root.text] + [child.tail for child in root]
    if len(root) == 0 or any(text and text.strip() for text in stray):
        return None
    return root


def parse_document(data: bytes, path: Union[str, PathLike] = "<bytes>") -> Element:
    """
    Parse report bytes into an element tree root.

    Args:
        data: Raw file content
        path: Used in error messages only

    Returns:
        The document root, or a synthetic root holding each concatenated document

    Raises:
        MalformedReportError: If the bytes are not well-formed markup
    """
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        root = _parse_concatenated(data)
        if root is None:
            raise MalformedReportError(path, e) from e
        logger.debug(f"{path}: {len(root)} top-level documents")
        return root


def iter_suite_elements(root: Element, dialect: Dialect) -> Iterator[Element]:
    """Yield suite elements in document order.

    A suite nesting other suites yields those first and then itself, but
    only when it has cases or a failure of its own. Any other element is a
    wrapper and is searched for suites.
    """
    tag = local_name(root.tag)
    if tag in dialect.suite_tags:
        nested = children(root, dialect.suite_tags)
        for suite in nested:
            yield from iter_suite_elements(suite, dialect)
        if (not nested
                or children(root, dialect.case_tags)
                or has_suite_level_failure(root, dialect)):
            yield root
        return

    if tag in dialect.case_tags:
        return

    if children(root, dialect.case_tags):
        # Wrapper holding cases directly; treat it as the suite.
        yield root
        return

    for child in root:
        yield from iter_suite_elements(child, dialect)


class ReportParser:
    """Parses report files with a fixed capture policy and dialect."""

    def __init__(
        self,
        keep_long_stdio: bool = False,
        diagnostics: bool = False,
        dialect: Optional[Dialect] = None,
        stdio_limit: int = DEFAULT_LIMIT,
    ):
        self.policy = TextCapturePolicy(keep_long_stdio=keep_long_stdio, limit=stdio_limit)
        self.diagnostics = diagnostics
        self.dialect = dialect or load_dialect()

    def parse_bytes(self, data: bytes, path: Union[str, PathLike] = "<bytes>") -> list[SuiteRecord]:
        root = parse_document(data, path)
        file = None if path == "<bytes>" else str(path)
        suites = [
            extract_suite(element, self.policy, self.dialect, self.diagnostics, file)
            for element in iter_suite_elements(root, self.dialect)
        ]
        logger.debug(f"Parsed {len(suites)} suites from {path}")
        return suites

    def parse(self, path: Union[str, PathLike]) -> list[SuiteRecord]:
        """Parse one report file.

        Raises:
            MalformedReportError: If the file is not well-formed markup
            OSError: If the file cannot be read
        """
        with open(path, 'rb') as f:
            data = f.read()
        return self.parse_bytes(data, Path(path))


def parse(
    path: Union[str, PathLike],
    keep_long_stdio: bool = False,
    diagnostics: bool = False,
    dialect: Optional[Dialect] = None,
    stdio_limit: int = DEFAULT_LIMIT,
) -> list[SuiteRecord]:
    """
    Parse a report file into suite records.

    Args:
        path: Report file
        keep_long_stdio: Keep console output whole instead of truncating it
        diagnostics: Record which fallback rules fired on each record
        dialect: Tag and attribute names; defaults to the configured dialect
        stdio_limit: Characters of console output kept per block when truncating

    Returns:
        Suites in document order
    """
    return ReportParser(keep_long_stdio, diagnostics, dialect, stdio_limit).parse(path)
