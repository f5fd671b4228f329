from canonlib.validator import validate


SOURCE = """# Title

Intro with a [link](https://a.io) and [another](https://b.io).

## Section

```python
x = 1
```

Closing paragraph with enough words to measure.
"""


class TestValidator:

    def test_traduccion_fiel_no_tiene_problemas(self):
        translated = SOURCE.replace("Intro with a", "Einleitung mit einem")
        result = validate(SOURCE, translated)
        assert result.score == 100
        assert result.issues == []
        assert result.accepted

    def test_encabezado_perdido_resta_20(self):
        translated = SOURCE.replace("## Section", "Section")
        result = validate(SOURCE, translated)
        assert result.score == 80
        assert len(result.issues) == 1
        assert result.accepted

    def test_bloque_de_codigo_perdido_resta_15(self):
        translated = SOURCE.replace("```python\nx = 1\n```", "x = 1 x = 1 x = 1")
        result = validate(SOURCE, translated)
        assert result.score == 85

    def test_enlace_perdido_resta_10(self):
        translated = SOURCE.replace(" and [another](https://b.io)", " und noch einer mehr")
        result = validate(SOURCE, translated)
        assert result.score == 90

    def test_traduccion_muy_larga_resta_25(self):
        translated = SOURCE + "Extra " * 100
        result = validate(SOURCE, translated)
        assert result.score == 75
        assert "longer" in result.issues[0]

    def test_traduccion_muy_corta_resta_25(self):
        translated = "# Title\n\n## Section\n\n[a](x) [b](y)\n```\n```"
        result = validate(SOURCE, translated)
        assert any("shorter" in issue for issue in result.issues)

    def test_tres_problemas_rechaza(self):
        # -20 -15 -10 = 55 y tres problemas
        translated = (
            SOURCE.replace("## Section", "Section")
                  .replace("```python\nx = 1\n```", "x equals one in code")
                  .replace("[another](https://b.io)", "another one")
        )
        result = validate(SOURCE, translated)
        assert len(result.issues) == 3
        assert result.reject is True

    def test_score_bajo_60_rechaza_con_dos_problemas(self):
        # -20 -25 = 55
        translated = "# Title\n\nkurz [a](x) [b](y)\n```\n```\n"
        result = validate(SOURCE, translated)
        assert result.score == 55
        assert len(result.issues) == 2
        assert result.reject is True

    def test_score_nunca_es_negativo(self):
        result = validate(SOURCE, "")
        assert result.score >= 0
        assert result.reject is True

    def test_vacios_son_validos(self):
        result = validate("", "")
        assert result.score == 100
        assert result.accepted

    def test_original_vacio_con_traduccion(self):
        result = validate("", "algo")
        assert result.score == 75

    def test_es_determinista(self):
        translated = SOURCE.replace("## Section", "Section")
        assert validate(SOURCE, translated) == validate(SOURCE, translated)


class TestEscenarioEncabezadosPerdidos:

    SOURCE = "# Uno\n\ntexto uno\n\n## Dos\n\ntexto dos\n\n## Tres\n\ntexto tres\n"

    def test_dos_de_tres_encabezados_perdidos(self):
        translated = self.SOURCE.replace("## Dos", "Dos").replace("## Tres", "Tres")
        result = validate(self.SOURCE, translated)
        assert result.score <= 80
        assert any("Heading count mismatch" in issue for issue in result.issues)

    def test_con_ratio_03_se_rechaza(self):
        translated = "# Uno\n\nkurz\n"
        assert len(translated) / len(self.SOURCE) < 0.5
        result = validate(self.SOURCE, translated)
        assert result.score == 55
        assert result.reject is True
