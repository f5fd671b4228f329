from canonlib.content.segmenter import PLACEHOLDER_RE, missing_placeholders, restore, segment


MDX = """import Chart from '../components/Chart.astro';

# Getting started

Run `npm install` and read the [guide](https://example.com/guide).

<Chart data="sales" />

<Callout type="info">
Remember to save.
</Callout>

```python
print("do not translate")
```
"""


class TestSegment:

    def test_codigo_e_imports_no_son_traducibles(self):
        seg = segment(MDX)
        assert "print(" not in seg.translatable_text
        assert "import Chart" not in seg.translatable_text
        assert "npm install" not in seg.translatable_text

    def test_componentes_y_urls_se_preservan(self):
        seg = segment(MDX)
        assert "<Chart" not in seg.translatable_text
        assert "</Callout>" not in seg.translatable_text
        assert "https://example.com/guide" not in seg.translatable_text

    def test_texto_humano_sigue_visible(self):
        seg = segment(MDX)
        assert "# Getting started" in seg.translatable_text
        assert "[guide]" in seg.translatable_text
        assert "Remember to save." in seg.translatable_text

    def test_placeholders_son_unicos_y_secuenciales(self):
        seg = segment(MDX)
        names = [span.placeholder for span in seg.preserved_spans]
        assert names == [f"__PRESERVED_{i}__" for i in range(len(names))]

    def test_bloque_de_codigo_va_primero(self):
        seg = segment(MDX)
        assert seg.preserved_spans[0].kind == "code_block"

    def test_texto_sin_nada_que_preservar(self):
        seg = segment("Solo prosa.\n")
        assert seg.translatable_text == "Solo prosa.\n"
        assert seg.preserved_spans == []


class TestRestore:

    def test_ida_y_vuelta_es_identica(self):
        seg = segment(MDX)
        assert restore(seg.translatable_text, seg.preserved_spans) == MDX

    def test_placeholders_anidados_se_resuelven(self):
        text = "See [docs](`path`) now."
        seg  = segment(text)
        # El destino del enlace contiene el placeholder del código inline
        assert any(PLACEHOLDER_RE.search(s.text) for s in seg.preserved_spans)
        assert restore(seg.translatable_text, seg.preserved_spans) == text

    def test_restaura_sobre_texto_traducido(self):
        seg        = segment("Read the [guide](https://x.io) and run `ls`.")
        translated = seg.translatable_text.replace("Read the", "Lies den").replace("and run", "und führe aus")
        result     = restore(translated, seg.preserved_spans)
        assert result == "Lies den [guide](https://x.io) und führe aus `ls`."


class TestMissingPlaceholders:

    def test_detecta_placeholder_perdido(self):
        seg = segment("Use `a` and `b`.")
        translated = seg.translatable_text.replace("__PRESERVED_1__", "")
        assert missing_placeholders(seg, translated) == ["__PRESERVED_1__"]

    def test_sin_perdidas(self):
        seg = segment("Use `a`.")
        assert missing_placeholders(seg, seg.translatable_text) == []
