"""Tests for file content extraction."""

from pathlib import Path

import docx
import fitz
import orjson
import pytest

from commonbase.core.errors import ValidationError
from commonbase.ingest.describer import ImageDescriber
from commonbase.ingest.extractors import ContentExtractor


class _StaticDescriber(ImageDescriber):
    def __init__(self, description: str | None = None, error: Exception | None = None) -> None:
        self.description = description
        self.error = error
        self.seen: list[tuple[Path, str | None]] = []

    def describe(self, path: Path, mime_type: str | None = None) -> str:
        self.seen.append((path, mime_type))
        if self.error is not None:
            raise self.error
        return self.description


def test_text_file(tmp_path: Path, sample_text: str) -> None:
    path = tmp_path / "notes.txt"
    path.write_text(sample_text)
    extracted = ContentExtractor().parse(path)
    assert extracted.text == sample_text
    meta = extracted.metadata
    assert meta["type"] == "text"
    assert meta["category"] == "text"
    assert meta["fileName"] == "notes.txt"
    assert meta["title"] == meta["author"] == "notes.txt"
    assert meta["fileSize"] == len(sample_text.encode("utf-8"))
    assert meta["extension"] == ".txt"
    assert len(meta["sha256"]) == 64


def test_code_file_category(tmp_path: Path) -> None:
    path = tmp_path / "script.py"
    path.write_text("print('hi')\n")
    extracted = ContentExtractor().parse(path)
    assert extracted.metadata["category"] == "code"
    assert extracted.text == "print('hi')\n"


def test_markdown_front_matter(tmp_path: Path) -> None:
    path = tmp_path / "post.md"
    path.write_text("---\ntitle: My Post\nauthor: Ada\n---\n# Heading\n\nSome *body* text.\n")
    extracted = ContentExtractor().parse(path)
    assert "Heading" in extracted.text
    assert "body" in extracted.text
    assert extracted.metadata["title"] == "My Post"
    assert extracted.metadata["author"] == "Ada"
    assert extracted.metadata["frontMatter"]["title"] == "My Post"


def test_front_matter_is_coerced_to_json(tmp_path: Path) -> None:
    path = tmp_path / "keys.md"
    path.write_text("---\n1: foo\ndate: 2024-05-01\ntags: [a, b]\n---\nBody\n")
    extracted = ContentExtractor().parse(path)
    assert extracted.metadata["frontMatter"] == {"1": "foo", "date": "2024-05-01", "tags": ["a", "b"]}


def test_unserializable_front_matter_is_dropped(tmp_path: Path) -> None:
    path = tmp_path / "set.md"
    path.write_text("---\ntitle: Kept out\nitems: !!set {a: null}\n---\nBody\n")
    extracted = ContentExtractor().parse(path)
    assert "frontMatter" not in extracted.metadata
    assert extracted.metadata["title"] == "set.md"
    assert extracted.text == "Body"


def test_csv_rows_serialized(tmp_path: Path) -> None:
    path = tmp_path / "people.csv"
    path.write_text("name,age\nAda,36\nAlan,41\n")
    extracted = ContentExtractor().parse(path)
    assert extracted.metadata["type"] == "csv"
    assert extracted.metadata["rowCount"] == 2
    assert extracted.metadata["fields"] == ["name", "age"]
    assert orjson.loads(extracted.text) == [{"name": "Ada", "age": "36"}, {"name": "Alan", "age": "41"}]


def test_pdf_text(tmp_path: Path) -> None:
    path = tmp_path / "paper.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Embedding retrieval in practice")
    doc.save(str(path))
    doc.close()
    extracted = ContentExtractor().parse(path)
    assert extracted.metadata["type"] == "pdf"
    assert extracted.metadata["pageCount"] == 1
    assert "Embedding retrieval" in extracted.text


def test_docx_text(tmp_path: Path) -> None:
    path = tmp_path / "report.docx"
    document = docx.Document()
    document.add_paragraph("Quarterly knowledge report")
    document.core_properties.title = "Q3 Report"
    document.save(str(path))
    extracted = ContentExtractor().parse(path)
    assert extracted.metadata["type"] == "docx"
    assert extracted.metadata["title"] == "Q3 Report"
    assert "Quarterly knowledge report" in extracted.text


def test_image_is_described(tmp_path: Path) -> None:
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")
    describer = _StaticDescriber("a dog in a park")
    extracted = ContentExtractor(describer).parse(path)
    assert extracted.text == "Image: photo.png\n\nDescription: a dog in a park"
    assert extracted.metadata["type"] == "image"
    assert extracted.metadata["description"] == "a dog in a park"
    assert describer.seen == [(path, "image/png")]


def test_image_description_failure_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"\xff\xd8\xff")
    extracted = ContentExtractor(_StaticDescriber(error=RuntimeError("vision down"))).parse(path)
    assert "Unable to automatically describe image" in extracted.text
    assert extracted.metadata["needsDescription"] is True
    assert extracted.metadata["error"] == "vision down"


def test_media_and_unknown_files_need_description(tmp_path: Path) -> None:
    audio = tmp_path / "memo.mp3"
    audio.write_bytes(b"ID3")
    extracted = ContentExtractor().parse(audio)
    assert extracted.metadata["type"] == "audio"
    assert extracted.metadata["needsDescription"] is True
    assert extracted.text.startswith("Audio file: memo.mp3")

    blob = tmp_path / "data.bin"
    blob.write_bytes(b"\x00\x01")
    extracted = ContentExtractor().parse(blob)
    assert extracted.metadata["type"] == "unknown"
    assert extracted.metadata["needsDescription"] is True


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        ContentExtractor().parse(tmp_path / "nope.txt")
