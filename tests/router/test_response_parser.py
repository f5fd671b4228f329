import json

import pytest
from canonlib.errors import ResponseParseError
from canonlib.router.response_parser import parse_translation_response, payload_from_dict


def make_raw(**overrides) -> str:
    data = {
        "translated_title":    "Hallo Welt",
        "translated_markdown": "# Hallo\n\nText __PRESERVED_0__",
        "ai_tldr":             "Kurze Zusammenfassung.",
        "ai_textscore": {
            "translationQuality": 88,
            "originalClarity":    75,
            "notes":              ["fluido"],
        },
        "review_issues": [],
    }
    data.update(overrides)
    return json.dumps(data)


class TestLocalizacionDelJson:

    def test_json_valido_directo(self):
        payload = parse_translation_response(make_raw(), "claude")
        assert payload.translated_markdown.startswith("# Hallo")
        assert payload.translated_title == "Hallo Welt"
        assert payload.summary == "Kurze Zusammenfassung."
        assert payload.translation_quality == 88.0
        assert payload.original_clarity == 75.0
        assert payload.score_notes == ["fluido"]

    def test_json_en_bloque_markdown(self):
        raw = f"```json\n{make_raw()}\n```"
        payload = parse_translation_response(raw, "claude")
        assert payload.translated_title == "Hallo Welt"

    def test_json_en_bloque_markdown_sin_lenguaje(self):
        raw = f"```\n{make_raw()}\n```"
        payload = parse_translation_response(raw, "claude")
        assert payload.translated_title == "Hallo Welt"

    def test_json_con_texto_extra_antes_y_despues(self):
        raw = f"Aquí está mi respuesta:\n{make_raw()}\nEspero que sea útil."
        payload = parse_translation_response(raw, "gemini")
        assert payload.translated_markdown.startswith("# Hallo")


class TestValidacionEstricta:

    def test_respuesta_sin_json_lanza_error(self):
        with pytest.raises(ResponseParseError) as exc:
            parse_translation_response("Lo siento, no puedo traducir esto.", "claude")
        assert exc.value.raw_text == "Lo siento, no puedo traducir esto."

    def test_respuesta_vacia_lanza_error(self):
        with pytest.raises(ResponseParseError):
            parse_translation_response("   ", "claude")

    def test_sin_translated_markdown_lanza_error(self):
        raw = json.dumps({"translated_title": "Titel"})
        with pytest.raises(ResponseParseError, match="translated_markdown"):
            parse_translation_response(raw, "claude")

    def test_translated_markdown_vacio_lanza_error(self):
        with pytest.raises(ResponseParseError):
            parse_translation_response(make_raw(translated_markdown="  "), "claude")

    def test_score_no_numerico_lanza_error(self):
        raw = make_raw(ai_textscore={"translationQuality": "alta"})
        with pytest.raises(ResponseParseError, match="translationQuality"):
            parse_translation_response(raw, "claude")

    def test_review_issues_mal_formado_lanza_error(self):
        with pytest.raises(ResponseParseError, match="review_issues"):
            parse_translation_response(make_raw(review_issues="ninguno"), "claude")

    def test_error_de_esquema_conserva_texto_crudo(self):
        raw = json.dumps({"translated_markdown": 42})
        with pytest.raises(ResponseParseError) as exc:
            parse_translation_response(raw, "claude")
        assert exc.value.raw_text == raw


class TestNormalizacion:

    def test_score_se_clampea_a_100(self):
        raw = make_raw(ai_textscore={"translationQuality": 140, "originalClarity": -5})
        payload = parse_translation_response(raw, "claude")
        assert payload.translation_quality == 100.0
        assert payload.original_clarity == 0.0

    def test_campos_opcionales_ausentes(self):
        raw = json.dumps({"translated_markdown": "Nur Text"})
        payload = parse_translation_response(raw, "claude")
        assert payload.translated_title is None
        assert payload.summary is None
        assert payload.translation_quality is None
        assert payload.review_issues == []

    def test_payload_vuelve_a_leerse_desde_su_dict(self):
        original = parse_translation_response(make_raw(), "claude")
        again    = payload_from_dict(original.to_dict())
        assert again == original
