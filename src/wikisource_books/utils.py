from __future__ import annotations

import xml.sax.saxutils as xsu
from typing import Optional

from .sanitizer import strip_comments

RTL_LANGUAGES = {
    "ar", "arc", "bcc", "bqi", "ckb", "dv", "fa", "glk", "he",
    "lrc", "mzn", "pnb", "ps", "sd", "ug", "ur", "yi",
}


def language_direction(lang: str) -> str:
    return "rtl" if lang in RTL_LANGUAGES else "ltr"


def xhtml_from_content(lang: Optional[str], content: str, title: str = " ") -> str:
    """Wrap a page body in the fixed XHTML prolog used for every exported page.

    Comments are stripped from the body first; an empty ``lang`` omits the
    language and direction attributes.
    """
    body = strip_comments(content) if content else ""
    root = "<html xmlns=\"http://www.w3.org/1999/xhtml\""
    if lang:
        root += f" xml:lang=\"{xsu.escape(lang)}\" dir=\"{language_direction(lang)}\""
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\" ?><!DOCTYPE html>"
        + root
        + "><head>"
        "<meta content=\"application/xhtml+xml;charset=UTF-8\" http-equiv=\"default-style\" />"
        "<link type=\"text/css\" rel=\"stylesheet\" href=\"main.css\" />"
        f"<title>{xsu.escape(title)}</title>"
        "</head><body>"
        + body
        + "</body></html>"
    )
