"""
Static HTML page for NO_CODE projects.

``render_page`` is deterministic and does no I/O: the same content and locale
always produce byte-identical output.
"""

from __future__ import annotations

from html import escape

from app.core.i18n import translate
from aisp_shared.schemas.common import Locale
from aisp_shared.schemas.configs import PageContent, is_absolute_url

_STYLE = """\
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f4f4f4; color: #333; }
        .container { background-color: #fff; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); max-width: 800px; margin: 0 auto; }
        h1 { color: #0056b3; }
        img { max-width: 100%; height: auto; border-radius: 8px; margin-top: 15px; }
        p { line-height: 1.6; }
        .footer { margin-top: 30px; font-size: 0.8em; text-align: center; color: #666; }"""


def render_page(content: PageContent, locale: Locale = Locale.EN) -> str:
    locale = Locale(locale)
    title = content.title or translate("page.default_title", locale)
    heading = content.heading or translate("page.default_heading", locale)
    body = content.body or translate("page.default_body", locale)

    image = ""
    if content.image_url and is_absolute_url(content.image_url.strip()):
        image = (
            f'\n        <img src="{escape(content.image_url.strip(), quote=True)}" '
            f'alt="{escape(translate("page.image_alt", locale), quote=True)}">'
        )

    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{locale.value}">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{escape(title)}</title>\n"
        f"    <style>\n{_STYLE}\n    </style>\n"
        "</head>\n"
        "<body>\n"
        '    <div class="container">\n'
        f"        <h1>{escape(heading)}</h1>{image}\n"
        f"        <p>{escape(body)}</p>\n"
        "    </div>\n"
        '    <div class="footer">\n'
        f"        <p>{escape(translate('page.footer', locale))}</p>\n"
        "    </div>\n"
        "</body>\n"
        "</html>\n"
    )
