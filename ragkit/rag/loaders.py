"""Document loaders for plain text, Markdown and HTML files.

Handles:
- File reading and existence checks
- YAML frontmatter parsing (Markdown)
- Markdown formatting / HTML markup removal
- Source metadata (path, type, title, timestamps)
- Dispatch by file extension
"""
import hashlib
import html
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import structlog
import yaml

from ragkit.errors import LoaderError
from ragkit.models import Document, LoaderConfig
from ragkit.rag.interfaces import DocumentLoader

logger = structlog.get_logger()


def _document_id(prefix: str, source: str) -> str:
    digest = hashlib.sha1(source.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}-{digest}"


def _timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


class FileLoader(DocumentLoader):
    """Shared read / metadata / error handling for file-based loaders.

    Subclasses set ``doc_type`` and ``id_prefix`` and implement ``parse``.
    """

    doc_type = "text"
    id_prefix = "text"

    async def load(
        self, source: str, config: Optional[LoaderConfig] = None
    ) -> List[Document]:
        """Load a file into a single document.

        Args:
            source: File path
            config: Loader options

        Returns:
            A one-element list, or an empty list for blank files

        Raises:
            LoaderError: If the file is missing, unreadable or unparsable
        """
        config = config or LoaderConfig()
        path = Path(source)

        try:
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")

            raw = path.read_text(encoding="utf-8")
            stats = path.stat()
            content, metadata = self.parse(raw, path, config)

        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.error(
                "document_load_failed",
                source=source,
                loader=type(self).__name__,
                error=str(e),
            )
            raise LoaderError(f"Failed to load {self.doc_type} file {source}: {e}") from e

        if not content.strip():
            logger.warning("empty_document_skipped", source=source)
            return []

        base_metadata = {
            "source": source,
            "type": self.doc_type,
            "title": path.name,
            "created_at": _timestamp(stats.st_ctime),
            "updated_at": _timestamp(stats.st_mtime),
        }
        base_metadata.update(metadata)
        base_metadata.update(config.metadata)

        document = Document(
            id=_document_id(self.id_prefix, source),
            content=content,
            metadata=base_metadata,
        )

        logger.info(
            "document_loaded",
            source=source,
            type=self.doc_type,
            content_length=len(content),
        )

        return [document]

    def parse(
        self, raw: str, path: Path, config: LoaderConfig
    ) -> Tuple[str, Dict[str, Any]]:
        """Return ``(content, extra_metadata)`` for the raw file text."""
        return raw, {}


class TextLoader(FileLoader):
    """Load plain text documents."""

    supported_extensions = (".txt", ".text")


class MarkdownLoader(FileLoader):
    """Load Markdown documents with optional YAML frontmatter."""

    supported_extensions = (".md", ".markdown")
    doc_type = "markdown"
    id_prefix = "md"

    # Regex for YAML frontmatter (must be at start of file)
    FRONTMATTER_PATTERN = re.compile(
        r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL | re.MULTILINE
    )

    TITLE_PATTERN = re.compile(r"^#[ \t]+(.+?)[ \t]*$", re.MULTILINE)

    # Frontmatter fields copied into document metadata
    FRONTMATTER_FIELDS = ("title", "tags", "created", "updated", "author")

    def parse(
        self, raw: str, path: Path, config: LoaderConfig
    ) -> Tuple[str, Dict[str, Any]]:
        frontmatter, body = self._parse_frontmatter(raw)

        metadata: Dict[str, Any] = {}
        title_match = self.TITLE_PATTERN.search(body)
        if title_match:
            metadata["title"] = title_match.group(1)

        for field in self.FRONTMATTER_FIELDS:
            if field in frontmatter:
                value = frontmatter[field]
                # Convert date/datetime objects to ISO format strings
                if hasattr(value, "isoformat"):
                    value = value.isoformat()
                metadata[field] = value

        content = body if config.preserve_formatting else remove_markdown_formatting(body)
        return content, metadata

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

        return frontmatter, content[match.end() :]


_MARKDOWN_RULES: Sequence[Tuple[re.Pattern, str]] = (
    (re.compile(r"```[\s\S]*?```"), ""),                  # code blocks
    (re.compile(r"`([^`]+)`"), r"\1"),                    # inline code
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),          # images
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),        # links, keep text
    (re.compile(r"^[-*_]{3,}[ \t]*$", re.MULTILINE), ""), # horizontal rules
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),             # bold
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),                # italic
    (re.compile(r"\n{3,}"), "\n\n"),
)


def remove_markdown_formatting(content: str) -> str:
    """Strip Markdown formatting, keeping heading lines.

    Headings stay because they are the section boundaries used by
    section-aware chunking.
    """
    for pattern, replacement in _MARKDOWN_RULES:
        content = pattern.sub(replacement, content)
    return content.strip()


class HTMLLoader(FileLoader):
    """Load HTML documents as plain text."""

    supported_extensions = (".html", ".htm")
    doc_type = "html"
    id_prefix = "html"

    TITLE_PATTERN = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)

    def parse(
        self, raw: str, path: Path, config: LoaderConfig
    ) -> Tuple[str, Dict[str, Any]]:
        metadata: Dict[str, Any] = {}
        title_match = self.TITLE_PATTERN.search(raw)
        if title_match and title_match.group(1).strip():
            metadata["title"] = html.unescape(title_match.group(1).strip())

        content = raw if config.preserve_formatting else extract_html_text(raw)
        return content, metadata


_HTML_RULES: Sequence[Tuple[re.Pattern, str]] = (
    (re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE), ""),
    (re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE), ""),
    (re.compile(r"<!--[\s\S]*?-->"), ""),
    (re.compile(r"<[^>]+>"), " "),
)


def extract_html_text(markup: str) -> str:
    """Reduce HTML to whitespace-normalised text."""
    for pattern, replacement in _HTML_RULES:
        markup = pattern.sub(replacement, markup)
    return re.sub(r"\s+", " ", html.unescape(markup)).strip()


class ExtensionLoader(DocumentLoader):
    """Dispatch to a loader based on the source's file extension."""

    def __init__(self, loaders: Optional[Sequence[DocumentLoader]] = None):
        """Initialize the dispatcher.

        Args:
            loaders: Loaders to route to (default: text, Markdown and HTML)
        """
        loaders = loaders or (TextLoader(), MarkdownLoader(), HTMLLoader())
        self._by_extension: Dict[str, DocumentLoader] = {}
        for loader in loaders:
            for extension in loader.supported_extensions:
                self._by_extension[extension.lower()] = loader

        self.supported_extensions = tuple(sorted(self._by_extension))

    async def load(
        self, source: str, config: Optional[LoaderConfig] = None
    ) -> List[Document]:
        """Load ``source`` with the loader registered for its extension.

        Raises:
            LoaderError: If no loader handles the extension, or loading fails
        """
        extension = Path(source).suffix.lower()
        loader = self._by_extension.get(extension)

        if loader is None:
            raise LoaderError(
                f"Unsupported file type '{extension or source}'; "
                f"supported: {', '.join(self.supported_extensions)}"
            )

        return await loader.load(source, config)
