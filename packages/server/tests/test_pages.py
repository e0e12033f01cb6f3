"""
Tests for the NO_CODE page renderer and the message catalogue.
"""

from __future__ import annotations

from app.core.i18n import translate
from app.services.pages import render_page
from aisp_shared.schemas.common import Locale
from aisp_shared.schemas.configs import PageContent


class TestRenderPage:
    def test_defaults(self):
        html = render_page(PageContent())
        assert html.startswith("<!DOCTYPE html>\n")
        assert "<title>My No-Code Page</title>" in html
        assert "<h1>Welcome!</h1>" in html
        assert "<img" not in html
        assert "Powered by AI Service Platform" in html

    def test_deterministic(self):
        content = PageContent(title="Cats", heading="Cat or dog?", body="Upload a photo.")
        assert render_page(content) == render_page(content)
        assert render_page(content, Locale.KO) == render_page(content, Locale.KO)

    def test_fields_are_embedded(self):
        html = render_page(
            PageContent(
                title="Cats",
                heading="Cat or dog?",
                body="Upload a photo.",
                image_url="https://cdn.example.com/cat.png",
            )
        )
        assert "<title>Cats</title>" in html
        assert "<h1>Cat or dog?</h1>" in html
        assert "<p>Upload a photo.</p>" in html
        assert '<img src="https://cdn.example.com/cat.png" alt="Page Image">' in html

    def test_relative_image_is_dropped(self):
        html = render_page(PageContent(image_url="/static/cat.png"))
        assert "<img" not in html

    def test_javascript_image_is_dropped(self):
        html = render_page(PageContent(image_url="javascript:alert(1)"))
        assert "<img" not in html

    def test_markup_is_escaped(self):
        html = render_page(
            PageContent(
                title="</title><script>alert(1)</script>",
                body="<b>bold</b> & more",
                image_url='https://example.com/a.png" onerror="alert(1)',
            )
        )
        assert "<script>" not in html
        assert "&lt;b&gt;bold&lt;/b&gt; &amp; more" in html
        assert 'onerror="alert' not in html

    def test_korean_locale(self):
        html = render_page(PageContent(), Locale.KO)
        assert '<html lang="ko">' in html
        assert "환영합니다!" in html
        assert "Welcome!" not in html


class TestTranslate:
    def test_lookup(self):
        assert translate("page.default_heading", Locale.KO) == "환영합니다!"

    def test_unknown_key_returns_key(self):
        assert translate("page.nope", Locale.KO) == "page.nope"

    def test_placeholders(self, monkeypatch):
        from app.core import i18n

        monkeypatch.setitem(i18n.MESSAGES[Locale.EN], "greeting", "Hello {{name}}")
        assert translate("greeting", Locale.EN, name="Ada") == "Hello Ada"
        # missing in Korean falls back to English
        assert translate("greeting", Locale.KO, name="Ada") == "Hello Ada"
