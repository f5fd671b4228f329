import pytest
from pathlib import Path

from canonlib.content.document import read_document, serialize_document
from canonlib.content.hasher import compute_content_hash
from canonlib.content.scanner import ContentScanner, derive_translation_location, language_from_location
from canonlib.storage.models import TranslationStatus
from canonlib.storage.registry import ContentRegistry


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def content_root(tmp_path) -> Path:
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture
def registry(tmp_path) -> ContentRegistry:
    return ContentRegistry(tmp_path / "data" / "content-registry.json").load()


def write(root: Path, location: str, metadata: dict, body: str = "# Title\n\nBody.\n") -> Path:
    path = root / location
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_document(metadata, body), encoding="utf-8")
    return path


def make_scanner(registry, content_root, **kwargs) -> ContentScanner:
    return ContentScanner(
        registry     = registry,
        content_root = content_root,
        languages    = ["en", "de"],
        collections  = ["books", "lab"],
        **kwargs,
    )


# ------------------------------------------------------------------
# discover
# ------------------------------------------------------------------

class TestDiscover:

    def test_solo_md_y_mdx_de_colecciones(self, registry, content_root):
        write(content_root, "books/en/a.md", {"title": "A"})
        write(content_root, "lab/en/b.mdx", {"title": "B"})
        write(content_root, "other/en/c.md", {"title": "C"})
        (content_root / "books" / "en" / "notes.txt").write_text("x")

        found = make_scanner(registry, content_root).discover()

        locations = [p.relative_to(content_root).as_posix() for p in found]
        assert locations == ["books/en/a.md", "lab/en/b.mdx"]


# ------------------------------------------------------------------
# scan
# ------------------------------------------------------------------

class TestScan:

    def test_registra_original_y_asigna_id(self, registry, content_root):
        path = write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})

        result = make_scanner(registry, content_root).scan()

        cid = read_document(path).metadata["canonicalId"]
        assert result.registered == [cid]
        assert result.files_updated == ["books/en/post.md"]
        entry = registry.get(cid)
        assert entry.origin_language == "en"
        assert entry.origin_location == "books/en/post.md"
        assert entry.content_hash == compute_content_hash(path.read_text(encoding="utf-8"))
        assert entry.translations == {}

    def test_persiste_registry_en_disco(self, registry, content_root):
        write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})
        make_scanner(registry, content_root).scan()

        reloaded = ContentRegistry(registry.path).load()
        assert len(reloaded) == 1

    def test_segundo_scan_no_cambia_nada(self, registry, content_root):
        write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})
        scanner = make_scanner(registry, content_root)
        scanner.scan()

        result = scanner.scan()

        assert result.registry_updated is False
        assert result.files_updated == []

    def test_heuristica_de_ruta_con_aviso(self, registry, content_root, caplog):
        write(content_root, "books/de/beitrag.md", {"title": "Beitrag"})

        with caplog.at_level("WARNING"):
            result = make_scanner(registry, content_root).scan()

        assert len(result.registered) == 1
        assert registry.get(result.registered[0]).origin_language == "de"
        assert "se asume original" in caplog.text

    def test_sin_heuristica_no_registra(self, registry, content_root):
        write(content_root, "books/de/beitrag.md", {"title": "Beitrag"})

        result = make_scanner(registry, content_root, infer_language_from_path=False).scan()

        assert result.registered == []
        assert result.errors

    def test_traduccion_se_registra_bajo_su_origen(self, registry, content_root):
        origin = write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})
        scanner = make_scanner(registry, content_root)
        scanner.scan()
        cid = read_document(origin).metadata["canonicalId"]
        origin_hash = registry.get(cid).content_hash

        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de", "translationOf": cid, "sourceHash": origin_hash,
        })
        scanner.scan()

        record = registry.get(cid).translations["de"]
        assert record.location == "books/de/post.md"
        assert record.status == TranslationStatus.CURRENT
        assert record.content_hash == origin_hash

    def test_traduccion_escaneada_antes_que_origen(self, registry, content_root):
        # "de/" se ordena antes que "en/": el origen debe existir igual
        origin = write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        origin_hash = compute_content_hash(origin.read_text(encoding="utf-8"))
        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de",
            "translationOf": "post-20240101-0a1b2c3d", "sourceHash": origin_hash,
        })

        make_scanner(registry, content_root).scan()

        entry = registry.get("post-20240101-0a1b2c3d")
        assert entry.translations["de"].status == TranslationStatus.CURRENT

    def test_traduccion_con_hash_viejo_queda_stale(self, registry, content_root):
        write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de",
            "translationOf": "post-20240101-0a1b2c3d", "sourceHash": "viejo",
        })

        make_scanner(registry, content_root).scan()

        record = registry.get("post-20240101-0a1b2c3d").translations["de"]
        assert record.status == TranslationStatus.STALE

    def test_traduccion_huerfana_es_error(self, registry, content_root):
        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de", "translationOf": "no-existe-20240101-00000000",
        })

        result = make_scanner(registry, content_root).scan()

        assert any("no existe" in e for e in result.errors)
        assert len(registry) == 0

    def test_traduccion_al_idioma_de_origen_es_error(self, registry, content_root):
        write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        write(content_root, "lab/en/copy.md", {
            "title": "Copy", "language": "en", "translationOf": "post-20240101-0a1b2c3d",
        })

        result = make_scanner(registry, content_root).scan()

        assert registry.get("post-20240101-0a1b2c3d").translations == {}
        assert any("idioma de origen" in e for e in result.errors)

    def test_cambio_en_origen_marca_traducciones_stale(self, registry, content_root):
        origin = write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        origin_hash = compute_content_hash(origin.read_text(encoding="utf-8"))
        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de",
            "translationOf": "post-20240101-0a1b2c3d", "sourceHash": origin_hash,
        })
        scanner = make_scanner(registry, content_root)
        scanner.scan()

        write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        }, body="# Title\n\nNew body.\n")
        result = scanner.scan()

        entry = registry.get("post-20240101-0a1b2c3d")
        assert result.registry_updated is True
        assert entry.content_hash != origin_hash
        assert entry.translations["de"].status == TranslationStatus.STALE

    def test_movimiento_conserva_identidad(self, registry, content_root):
        write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        scanner = make_scanner(registry, content_root)
        scanner.scan()

        old = content_root / "books/en/post.md"
        new = content_root / "lab/en/renamed.md"
        new.parent.mkdir(parents=True)
        old.rename(new)
        scanner.scan()

        entry = registry.get("post-20240101-0a1b2c3d")
        assert entry.origin_location == "lab/en/renamed.md"
        assert len(registry) == 1

    def test_id_duplicado_es_error(self, registry, content_root):
        meta = {"title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d"}
        write(content_root, "books/en/post.md", meta)
        write(content_root, "lab/en/copy.md", meta)

        result = make_scanner(registry, content_root).scan()

        assert registry.get("post-20240101-0a1b2c3d").origin_location == "books/en/post.md"
        assert any("duplicado" in e for e in result.errors)

    def test_cabecera_invalida_no_detiene_el_scan(self, registry, content_root):
        bad = content_root / "books/en/bad.md"
        bad.parent.mkdir(parents=True)
        bad.write_text("---\ntitle: [roto\n---\nx\n", encoding="utf-8")
        write(content_root, "books/en/good.md", {"title": "Good", "originalLanguage": "en"})

        result = make_scanner(registry, content_root).scan()

        assert len(result.registered) == 1
        assert any("bad.md" in e for e in result.errors)


# ------------------------------------------------------------------
# reconcile / audit
# ------------------------------------------------------------------

class TestReconcile:

    def _setup(self, registry, content_root):
        origin = write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "post-20240101-0a1b2c3d",
        })
        origin_hash = compute_content_hash(origin.read_text(encoding="utf-8"))
        write(content_root, "books/de/post.md", {
            "title": "Beitrag", "language": "de",
            "translationOf": "post-20240101-0a1b2c3d", "sourceHash": origin_hash,
        })
        scanner = make_scanner(registry, content_root)
        scanner.scan()
        return scanner

    def test_traduccion_borrada_pasa_a_missing(self, registry, content_root):
        scanner = self._setup(registry, content_root)
        (content_root / "books/de/post.md").unlink()

        result = scanner.reconcile()

        assert result.marked_missing == ["post-20240101-0a1b2c3d:de"]
        record = ContentRegistry(registry.path).load().get("post-20240101-0a1b2c3d").translations["de"]
        assert record.status == TranslationStatus.MISSING

    def test_origen_borrado_elimina_entrada(self, registry, content_root):
        scanner = self._setup(registry, content_root)
        (content_root / "books/en/post.md").unlink()

        result = scanner.reconcile()

        assert result.removed == ["post-20240101-0a1b2c3d"]
        assert len(ContentRegistry(registry.path).load()) == 0

    def test_dry_run_no_modifica(self, registry, content_root):
        scanner = self._setup(registry, content_root)
        (content_root / "books/en/post.md").unlink()

        result = scanner.reconcile(dry_run=True)

        assert result.removed == ["post-20240101-0a1b2c3d"]
        assert "post-20240101-0a1b2c3d" in registry


class TestAudit:

    def test_registry_consistente(self, registry, content_root):
        write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})
        scanner = make_scanner(registry, content_root)
        scanner.scan()

        result = scanner.audit()

        assert result.valid is True
        assert result.stats["entries"] == 1

    def test_origen_inexistente_es_error(self, registry, content_root):
        path = write(content_root, "books/en/post.md", {"title": "Post", "originalLanguage": "en"})
        scanner = make_scanner(registry, content_root)
        scanner.scan()
        path.unlink()

        result = scanner.audit()

        assert result.valid is False
        assert any("Original file missing" in e for e in result.errors)

    def test_id_no_estandar_es_aviso(self, registry, content_root):
        write(content_root, "books/en/post.md", {
            "title": "Post", "originalLanguage": "en", "canonicalId": "legacy",
        })
        scanner = make_scanner(registry, content_root)
        scanner.scan()

        result = scanner.audit()

        assert result.valid is True
        assert any("legacy" in w for w in result.warnings)


# ------------------------------------------------------------------
# Helpers de ubicación
# ------------------------------------------------------------------

class TestLocations:

    def test_reemplaza_segmento_de_idioma(self):
        assert derive_translation_location("books/en/post.md", "en", "de") == "books/de/post.md"

    def test_solo_reemplaza_el_primer_segmento(self):
        assert derive_translation_location("en/guides/en/x.md", "en", "de") == "de/guides/en/x.md"

    def test_sin_segmento_inserta_directorio(self):
        assert derive_translation_location("books/post.md", "en", "de") == "books/de/post.md"

    def test_nombre_de_archivo_no_cuenta_como_idioma(self):
        assert language_from_location("books/notes/en.md", ["en", "de"]) is None

    def test_idioma_desde_ruta(self):
        assert language_from_location("books/de/x.md", ["en", "de"]) == "de"
