import base64

from gradeflow.services.normalizer import Artifact, normalize

MIB = 1024 * 1024


def test_text_is_read_verbatim():
    content = normalize(Artifact.from_bytes("notes.md", "text/markdown", "Ünïcode notes".encode()))

    assert content.text_representation == "Ünïcode notes"
    assert content.inline_image is None
    assert not content.degraded


def test_invalid_utf8_is_replaced_not_rejected():
    content = normalize(Artifact.from_bytes("notes.txt", "text/plain", b"ok \xff\xfe"))

    assert content.text_representation.startswith("ok ")
    assert "\ufffd" in content.text_representation


def test_small_image_is_inlined():
    data = b"\x89PNG\r\n tiny"
    content = normalize(Artifact.from_bytes("chart.png", "image/png", data))

    assert content.inline_image.base64 == base64.b64encode(data).decode("ascii")
    assert content.inline_image.mime_type == "image/png"
    assert "chart.png" in content.text_representation
    assert not content.degraded


def test_image_at_inline_limit_is_still_inlined():
    content = normalize(Artifact.from_bytes("a.jpg", "image/jpeg", b"\x00" * (4 * MIB)))
    assert content.inline_image is not None


def test_large_image_degrades_to_placeholder():
    # read_bytes must not be needed for the placeholder
    artifact = Artifact(name="huge.jpg", media_type="image/jpeg", size_bytes=5 * MIB, read_bytes=lambda: 1 / 0)
    content = normalize(artifact)

    assert content.inline_image is None
    assert "Too large for AI analysis" in content.text_representation
    assert content.degraded
    assert "less detailed assessment" in content.degraded_reason


def test_unreadable_image_degrades_to_placeholder():
    def boom():
        raise OSError("disk went away")

    content = normalize(Artifact(name="broken.png", media_type="image/png", size_bytes=10, read_bytes=boom))

    assert content.inline_image is None
    assert "Error processing image content" in content.text_representation
    assert content.degraded


def test_document_uses_metadata_placeholder():
    content = normalize(Artifact.from_bytes("report.pdf", "application/pdf", b"%PDF-1.7"))

    assert content.text_representation.startswith("[Document file: report.pdf - Type: application/pdf - Size: 8 bytes.")
    assert content.degraded


def test_docx_is_a_document():
    media_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    content = normalize(Artifact.from_bytes("essay.docx", media_type, b"PK"))
    assert content.text_representation.startswith("[Document file: essay.docx")


def test_archive_is_not_expanded():
    content = normalize(Artifact.from_bytes("project.zip", "application/zip", b"PK\x03\x04"))

    assert content.text_representation.startswith("[Archive file: project.zip - Type: ZIP")
    assert content.degraded


def test_other_types_get_generic_placeholder():
    content = normalize(Artifact.from_bytes("data.bin", "application/octet-stream", b"\x00\x01"))

    assert content.text_representation == "[File: data.bin - Type: application/octet-stream - Size: 2 bytes]"
    assert content.degraded
