from datetime import date

from canonlib.content.canonical_id import (
    CANONICAL_ID_RE, allocate, ensure_canonical_id, is_valid_canonical_id,
)
from canonlib.content.document import read_document


DAY = date(2024, 3, 15)


class TestAllocate:

    def test_formato_slug_fecha_hash(self):
        cid = allocate("books/en/My First Post.md", "content", today=DAY)
        assert CANONICAL_ID_RE.match(cid)
        assert cid.startswith("my-first-post-20240315-")

    def test_es_determinista(self):
        assert allocate("a/en/x.md", "c", today=DAY) == allocate("a/en/x.md", "c", today=DAY)

    def test_contenido_distinto_cambia_hash8(self):
        assert allocate("a/en/x.md", "uno", today=DAY) != allocate("a/en/x.md", "dos", today=DAY)

    def test_slug_sin_ascii_usa_fallback(self):
        cid = allocate("books/en/日本語.md", "c", today=DAY)
        assert cid.startswith("content-20240315-")

    def test_acentos_se_transliteran(self):
        cid = allocate("books/de/Über Größe.md", "c", today=DAY)
        assert cid.startswith("uber-groe-20240315-")
        assert is_valid_canonical_id(cid)


class TestIsValid:

    def test_valido(self):
        assert is_valid_canonical_id("hello-world-20240101-0a1b2c3d")

    def test_invalidos(self):
        assert not is_valid_canonical_id("")
        assert not is_valid_canonical_id("Hello-20240101-0a1b2c3d")
        assert not is_valid_canonical_id("hello-2024-0a1b2c3d")
        assert not is_valid_canonical_id("hello-20240101-0A1B2C3D")


class TestEnsureCanonicalId:

    def test_asigna_y_escribe_una_vez(self, tmp_path):
        path = tmp_path / "post.md"
        path.write_text("---\ntitle: Post\n---\nCuerpo\n", encoding="utf-8")

        cid, allocated = ensure_canonical_id(path, "books/en/post.md", today=DAY)

        assert allocated is True
        assert read_document(path).metadata["canonicalId"] == cid
        assert read_document(path).body == "Cuerpo\n"

    def test_es_idempotente(self, tmp_path):
        path = tmp_path / "post.md"
        path.write_text("---\ntitle: Post\n---\nCuerpo\n", encoding="utf-8")

        first, _ = ensure_canonical_id(path, "books/en/post.md", today=DAY)
        before   = path.read_text(encoding="utf-8")
        second, allocated = ensure_canonical_id(path, "books/en/post.md", today=date(2030, 1, 1))

        assert second == first
        assert allocated is False
        assert path.read_text(encoding="utf-8") == before

    def test_respeta_id_existente(self, tmp_path):
        path = tmp_path / "post.md"
        path.write_text("---\ncanonicalId: legacy-id\ntitle: P\n---\nx\n", encoding="utf-8")

        cid, allocated = ensure_canonical_id(path, "books/en/post.md")

        assert cid == "legacy-id"
        assert allocated is False
