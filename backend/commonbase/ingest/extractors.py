"""Content extractors turning files into (text, metadata) pairs."""

from __future__ import annotations

import csv
import hashlib
import io
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import docx
import fitz
import langid
import orjson
import yaml
from markdown_it import MarkdownIt

from commonbase.core.errors import ValidationError
from commonbase.core.logging import get_logger
from commonbase.ingest.describer import ImageDescriber
from commonbase.ingest.types import ExtractedContent
from commonbase.utils.text import normalize

logger = get_logger(__name__)

_MD = MarkdownIt()

_TEXT_CATEGORIES: dict[str, str] = {
    ".txt": "text",
    ".log": "log",
    ".md": "markdown",
    ".json": "data",
    ".yaml": "data",
    ".yml": "data",
    ".toml": "config",
    ".ini": "config",
    ".cfg": "config",
    ".xml": "markup",
    ".html": "markup",
    ".htm": "markup",
    ".css": "stylesheet",
    ".py": "code",
    ".js": "code",
    ".ts": "code",
    ".tsx": "code",
    ".jsx": "code",
    ".java": "code",
    ".go": "code",
    ".rs": "code",
    ".c": "code",
    ".h": "code",
    ".cpp": "code",
    ".rb": "code",
    ".sh": "script",
    ".sql": "code",
}


class BaseExtractor:
    """Common extractor interface."""

    suffixes: tuple[str, ...] = ()
    mime_prefixes: tuple[str, ...] = ()
    file_type: str = "unknown"

    def can_extract(self, path: Path, mime_type: str) -> bool:
        if path.suffix.lower() in self.suffixes:
            return True
        return any(mime_type.startswith(prefix) for prefix in self.mime_prefixes)

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:  # pragma: no cover - interface
        raise NotImplementedError


class MarkdownExtractor(BaseExtractor):
    suffixes = (".md", ".markdown", ".mdx")
    mime_prefixes = ("text/markdown",)
    file_type = "text"

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        text = path.read_text(encoding="utf-8", errors="ignore")
        front_matter, body = _split_front_matter(text)
        rendered = _markdown_to_text(body)
        metadata.update(type=self.file_type, category="markdown", lang=_detect_lang(rendered))
        front_matter = _json_safe(front_matter, path)
        if front_matter:
            metadata["frontMatter"] = front_matter
            if front_matter.get("title"):
                metadata["title"] = str(front_matter["title"])
            if front_matter.get("author"):
                metadata["author"] = str(front_matter["author"])
        return ExtractedContent(text=rendered, metadata=metadata)


class CsvExtractor(BaseExtractor):
    suffixes = (".csv",)
    mime_prefixes = ("text/csv",)
    file_type = "csv"

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        raw = path.read_text(encoding="utf-8", errors="ignore")
        reader = csv.DictReader(io.StringIO(raw))
        rows = [dict(row) for row in reader]
        metadata.update(type=self.file_type, rowCount=len(rows), fields=list(reader.fieldnames or []))
        text = orjson.dumps(rows, option=orjson.OPT_INDENT_2).decode("utf-8")
        return ExtractedContent(text=text, metadata=metadata)


class PDFExtractor(BaseExtractor):
    suffixes = (".pdf",)
    mime_prefixes = ("application/pdf",)
    file_type = "pdf"

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        with fitz.open(str(path)) as doc:
            pages = [page.get_text("text", sort=True) for page in doc]
            pdf_meta = doc.metadata or {}
        text = normalize("\n\n".join(pages))
        metadata.update(type=self.file_type, pageCount=len(pages), lang=_detect_lang(text))
        if pdf_meta.get("title"):
            metadata["title"] = pdf_meta["title"]
        if pdf_meta.get("author"):
            metadata["author"] = pdf_meta["author"]
        if not text:
            metadata["needsDescription"] = True
            text = f"PDF file: {path.name}. No extractable text. Please add description or content manually."
        return ExtractedContent(text=text, metadata=metadata)


class DocxExtractor(BaseExtractor):
    suffixes = (".docx",)
    mime_prefixes = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",)
    file_type = "docx"

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        document = docx.Document(str(path))
        paragraphs = [para.text for para in document.paragraphs if para.text.strip()]
        text = "\n".join(paragraphs)
        core = document.core_properties
        metadata.update(type=self.file_type, lang=_detect_lang(text))
        if core.title:
            metadata["title"] = core.title
        if core.author:
            metadata["author"] = core.author
        if not text.strip():
            metadata["needsDescription"] = True
            text = f"Document: {path.name}. No extractable text. Please add description or content manually."
        return ExtractedContent(text=text, metadata=metadata)


class ImageExtractor(BaseExtractor):
    mime_prefixes = ("image/",)
    file_type = "image"

    def __init__(self, describer: ImageDescriber | None) -> None:
        self.describer = describer

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        metadata["type"] = self.file_type
        if self.describer is None:
            metadata["needsDescription"] = True
            return ExtractedContent(
                text=f"Image file: {path.name}. Please add description manually.",
                metadata=metadata,
            )
        try:
            description = self.describer.describe(path, metadata.get("mimeType"))
        except Exception as exc:
            logger.warning("Failed to describe image %s: %s", path, exc)
            metadata.update(needsDescription=True, error=str(exc))
            return ExtractedContent(
                text=f"Image file: {path.name}. Unable to automatically describe image. "
                "Please add description manually.",
                metadata=metadata,
            )
        metadata["description"] = description
        return ExtractedContent(text=f"Image: {path.name}\n\nDescription: {description}", metadata=metadata)


class TextExtractor(BaseExtractor):
    suffixes = tuple(_TEXT_CATEGORIES)
    mime_prefixes = ("text/",)
    file_type = "text"

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        text = path.read_text(encoding="utf-8", errors="ignore")
        metadata.update(
            type=self.file_type,
            category=_TEXT_CATEGORIES.get(path.suffix.lower(), "text"),
            lang=_detect_lang(text),
        )
        return ExtractedContent(text=text, metadata=metadata)


class MediaExtractor(BaseExtractor):
    mime_prefixes = ("audio/", "video/")

    def extract(self, path: Path, metadata: dict[str, Any]) -> ExtractedContent:
        kind = "video" if metadata.get("mimeType", "").startswith("video/") else "audio"
        metadata.update(type=kind, needsDescription=True)
        return ExtractedContent(
            text=f"{kind.capitalize()} file: {path.name}. Please add description or transcript that will be embedded.",
            metadata=metadata,
        )


class ContentExtractor:
    """Selects an extractor for a path and builds the shared file metadata."""

    def __init__(self, describer: ImageDescriber | None = None) -> None:
        self._extractors: list[BaseExtractor] = [
            MarkdownExtractor(),
            CsvExtractor(),
            PDFExtractor(),
            DocxExtractor(),
            ImageExtractor(describer),
            TextExtractor(),
            MediaExtractor(),
        ]

    def register(self, extractor: BaseExtractor) -> None:
        self._extractors.insert(0, extractor)

    def for_path(self, path: Path, mime_type: str) -> BaseExtractor | None:
        for extractor in self._extractors:
            if extractor.can_extract(path, mime_type):
                return extractor
        return None

    def parse(self, path: Path) -> ExtractedContent:
        path = Path(path).expanduser()
        if not path.is_file():
            raise ValidationError(f"File does not exist: {path}")
        metadata = _base_metadata(path)
        extractor = self.for_path(path, metadata["mimeType"])
        if extractor is None:
            metadata["needsDescription"] = True
            return ExtractedContent(
                text=f"File: {path.name}. Please add description or content that will be embedded.",
                metadata=metadata,
            )
        try:
            return extractor.extract(path, metadata)
        except Exception as exc:
            logger.exception("Error parsing file %s: %s", path, exc)
            metadata.update(needsDescription=True, error=str(exc))
            return ExtractedContent(
                text=f"Error parsing file: {path.name}. Please add description or content manually.",
                metadata=metadata,
            )


def _base_metadata(path: Path) -> dict[str, Any]:
    stat = path.stat()
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return {
        "fileName": path.name,
        "filePath": str(path.resolve()),
        "fileSize": stat.st_size,
        "mimeType": mime_type,
        "title": path.name,
        "author": path.name,
        "type": "unknown",
        "extension": path.suffix.lower(),
        "lastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        "sha256": _file_digest(path),
    }


def _file_digest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


def _split_front_matter(text: str) -> tuple[dict[str, Any] | None, str]:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1]) or {}
            except yaml.YAMLError:
                return None, text
            if isinstance(front_matter, dict):
                return front_matter, parts[2]
    return None, text


def _json_safe(front_matter: dict[str, Any] | None, path: Path) -> dict[str, Any] | None:
    """Coerce front matter to JSON types; ``None`` when YAML produced something JSON cannot hold."""
    if not front_matter:
        return None
    try:
        return orjson.loads(orjson.dumps(front_matter, option=orjson.OPT_NON_STR_KEYS))
    except orjson.JSONEncodeError as exc:
        logger.warning("Dropping front matter of %s: %s", path, exc)
        return None


def _markdown_to_text(text: str) -> str:
    tokens = _MD.parse(text)
    parts = [token.content.strip() for token in tokens if token.content.strip()]
    return "\n".join(parts) if parts else text.strip()


def _detect_lang(text: str) -> str:
    if not text.strip():
        return "und"
    lang, _ = langid.classify(text)
    return lang


__all__ = [
    "BaseExtractor",
    "ContentExtractor",
    "CsvExtractor",
    "DocxExtractor",
    "ImageExtractor",
    "MarkdownExtractor",
    "MediaExtractor",
    "PDFExtractor",
    "TextExtractor",
]
