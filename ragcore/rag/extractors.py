"""Format-specific text extraction.

Each format has an ``Extractor`` that turns raw bytes into text plus
metadata. An ``ExtractorRegistry`` maps formats to extractors; binary formats
(PDF, Word) are registered by callers that bring their own readers.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union
import yaml
import structlog

from ragcore.errors import ProcessingFailed, UnsupportedFormatError
from ragcore.rag.document import DocumentFormat

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExtractedText:
    """Text and metadata produced by an extractor."""

    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class Extractor(Protocol):
    """Turns the raw bytes of one document format into text."""

    def extract(self, data: bytes) -> ExtractedText:
        ...


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error("text_decode_error", error=str(e))
        raise ProcessingFailed(f"Text is not valid UTF-8: {e}") from e


class PlainTextExtractor:
    """UTF-8 plain text."""

    def extract(self, data: bytes) -> ExtractedText:
        return ExtractedText(text=_decode(data), metadata={"page_count": None})


class MarkdownExtractor:
    """Markdown with optional YAML front matter."""

    # Regex for YAML frontmatter (must be at start of file)
    FRONTMATTER_PATTERN = re.compile(
        r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL | re.MULTILINE
    )

    # Regex for markdown headings
    HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)$", re.MULTILINE)

    # Front matter fields lifted into document metadata
    METADATA_FIELDS = ("title", "author", "subject", "tags", "created", "updated")
    TEXT_FIELDS = ("title", "author", "subject")

    def extract(self, data: bytes) -> ExtractedText:
        content = _decode(data)
        frontmatter, body = self._parse_frontmatter(content)

        metadata: Dict[str, Any] = {"page_count": None}
        for name in self.METADATA_FIELDS:
            value = frontmatter.get(name)
            if value is None:
                continue
            # Convert date/datetime objects to ISO format strings
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            if name in self.TEXT_FIELDS:
                value = str(value)
            metadata[name] = value

        if not metadata.get("title"):
            heading = self.HEADING_PATTERN.search(body)
            if heading:
                metadata["title"] = heading.group(2).strip()

        logger.debug(
            "markdown_extracted",
            has_frontmatter=bool(frontmatter),
            content_length=len(body),
        )

        return ExtractedText(text=body, metadata=metadata)

    def _parse_frontmatter(self, content: str) -> Tuple[Dict[str, Any], str]:
        """Extract YAML frontmatter from markdown content.

        Args:
            content: Full markdown content

        Returns:
            Tuple of (frontmatter_dict, content_without_frontmatter)
        """
        match = self.FRONTMATTER_PATTERN.match(content)

        if not match:
            return {}, content

        yaml_content = match.group(1)
        try:
            frontmatter = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            logger.warning(
                "frontmatter_parse_error",
                error=str(e),
                yaml_preview=yaml_content[:100],
            )
            frontmatter = None

        if not isinstance(frontmatter, dict):
            frontmatter = {}

        return frontmatter, content[match.end():]


class ExtractorRegistry:
    """Format-to-extractor lookup, fixed at construction."""

    def __init__(self, extractors: Optional[Mapping[Union[str, DocumentFormat], Extractor]] = None):
        """Initialize the registry.

        Args:
            extractors: Mapping of format to extractor (default: txt and md)
        """
        if extractors is None:
            extractors = {
                DocumentFormat.TXT: PlainTextExtractor(),
                DocumentFormat.MD: MarkdownExtractor(),
            }
        self._extractors: Dict[str, Extractor] = {
            format_key(fmt): extractor for fmt, extractor in extractors.items()
        }

    @property
    def formats(self) -> Tuple[str, ...]:
        return tuple(self._extractors)

    def supports(self, fmt: Union[str, DocumentFormat]) -> bool:
        return format_key(fmt) in self._extractors

    def get(self, fmt: Union[str, DocumentFormat]) -> Extractor:
        """Look up the extractor for a format.

        Raises:
            UnsupportedFormatError: If no extractor is registered
        """
        key = format_key(fmt)
        try:
            return self._extractors[key]
        except KeyError:
            raise UnsupportedFormatError(key) from None

    def extract(self, fmt: Union[str, DocumentFormat], data: bytes) -> ExtractedText:
        return self.get(fmt).extract(data)


def format_key(fmt: Union[str, DocumentFormat]) -> str:
    """Canonical lookup key for a format: ``DocumentFormat.MD``, "MD", ".md" -> "md"."""
    if isinstance(fmt, DocumentFormat):
        return fmt.value
    return str(fmt).lower().lstrip(".")
