import pytest
from canonlib.storage.cache import FileTranslationCache, SqliteTranslationCache


PAYLOAD = {
    "translated_markdown": "# Hallo",
    "translated_title":    "Hallo",
    "ai_textscore":        {"translationQuality": 90, "notes": []},
    "review_issues":       [],
}


@pytest.fixture(params=["files", "sqlite"])
def cache(request, tmp_path):
    """El mismo contrato para ambos backends."""
    if request.param == "files":
        c = FileTranslationCache(tmp_path / ".translation-cache")
    else:
        c = SqliteTranslationCache(db_path=":memory:")
    yield c
    c.close()


class TestTranslationCache:

    def test_miss(self, cache):
        assert cache.get("abc", "de") is None

    def test_put_y_get(self, cache):
        cache.put("abc", "de", PAYLOAD)
        assert cache.get("abc", "de") == PAYLOAD

    def test_clave_incluye_idioma(self, cache):
        cache.put("abc", "de", PAYLOAD)
        assert cache.get("abc", "en") is None

    def test_put_sobrescribe(self, cache):
        cache.put("abc", "de", PAYLOAD)
        cache.put("abc", "de", {**PAYLOAD, "translated_title": "Neu"})
        assert cache.get("abc", "de")["translated_title"] == "Neu"


class TestFileCache:

    def test_claves_se_sanean(self, tmp_path):
        cache = FileTranslationCache(tmp_path)
        cache.put("../evil", "de", PAYLOAD)

        files = [p.name for p in tmp_path.iterdir()]
        assert files == [".._evil-de.json"]
        assert cache.get("../evil", "de") == PAYLOAD


class TestSqliteCache:

    def test_sqlite_persiste_en_disco(self, tmp_path):
        db = str(tmp_path / "cache.db")
        first = SqliteTranslationCache(db)
        first.put("abc", "de", PAYLOAD)
        first.close()

        second = SqliteTranslationCache(db)
        assert second.get("abc", "de") == PAYLOAD
        second.close()
