import html
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_.]+)\s*\}\}")
_LINK_SPAN = re.compile(r"\[\[([^\]]*)\]\]")
_BARE_URL = re.compile(r"(https?://[^\s<]+)")

_templates = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent.parent / "templates")),
    autoescape=select_autoescape(["html"]),
)


def split_name(name: Optional[str]) -> Tuple[str, str]:
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_lookup(contact, extras: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Keys are lower-cased so placeholder matching is case-insensitive."""
    name = ((contact.name if contact is not None else None) or "").strip()
    first_name, last_name = split_name(name)

    table = {
        "contact.name": name,
        "contact.first_name": first_name,
        "contact.last_name": last_name,
        "contact.email": ((contact.email if contact is not None else None) or "").strip(),
        "contact.phone": ((contact.phone if contact is not None else None) or "").strip(),
        "contact.address": ((contact.address if contact is not None else None) or "").strip(),
    }
    for key, value in (extras or {}).items():
        table[key.lower()] = "" if value is None else str(value)
    return table


def substitute(template: str, contact, extras: Optional[Mapping[str, str]] = None) -> str:
    if not template:
        return ""
    table = build_lookup(contact, extras)
    return _PLACEHOLDER.sub(lambda m: table.get(m.group(1).lower(), ""), template)


def linkify(text: str, url: Optional[str]) -> str:
    """Rewrite [[label]] spans as markdown links, or plain labels when there is no URL."""
    if not text:
        return ""
    if url:
        return _LINK_SPAN.sub(lambda m: f"[{m.group(1)}]({url})", text)
    return _LINK_SPAN.sub(lambda m: m.group(1), text)


def _body_to_html(body: str, link_url: Optional[str]) -> str:
    labels = []

    def _hold(m: re.Match) -> str:
        labels.append(m.group(1))
        return f"\x00L{len(labels) - 1}\x00"

    held = _LINK_SPAN.sub(_hold, body.strip())
    escaped = html.escape(held).replace("\n", "<br>\n")
    escaped = _BARE_URL.sub(lambda m: f'<a href="{m.group(1)}">{m.group(1)}</a>', escaped)

    def _restore(m: re.Match) -> str:
        label = html.escape(labels[int(m.group(1))])
        if not link_url:
            return label
        return f'<a href="{html.escape(link_url)}">{label}</a>'

    return re.sub(r"\x00L(\d+)\x00", _restore, escaped)


def render_email_html(body: str, *, link_url: Optional[str] = None, sender_name: str = "") -> str:
    """
    Render a plain-text e-mail body into the outbound HTML layout.

    [[label]] spans become anchors to link_url, bare URLs are linked, and a
    default download link is appended when the body carries no link at all.
    """
    body_html = _body_to_html(body, link_url)
    return _templates.get_template("email.html").render(
        body_html=body_html,
        fallback_link=link_url if link_url and "href=" not in body_html else None,
        sender_name=sender_name,
    )


def render_document_html(**context) -> str:
    return _templates.get_template("quote_document.html").render(**context)
