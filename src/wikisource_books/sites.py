from __future__ import annotations

import re
from typing import Tuple
from urllib.parse import quote

CONTENT_DOMAIN = "wikisource.org"
WIKILIVRES_DOMAIN = "wikilivres.ca"

_WIKIBOOKS_RE = re.compile(r"^([a-z_]{2,})-?wikibooks$")
CONTENT_HOST_RE = re.compile(r"^(.*\.)?wikisource\.org$")

# characters MediaWiki leaves readable in page URLs
_MW_SAFE = "!$()*,-./:;@"


def resolve_domain(lang: str) -> Tuple[str, str]:
    """Map a language code to ``(domain, effective_lang)``.

    >>> resolve_domain("fr")
    ('fr.wikisource.org', 'fr')
    >>> resolve_domain("www")
    ('wikisource.org', '')
    """
    if lang in ("", "www"):
        return CONTENT_DOMAIN, ""
    if lang in ("wl", "wikilivres"):
        return WIKILIVRES_DOMAIN, ""
    m = _WIKIBOOKS_RE.match(lang)
    if m:
        return f"{m.group(1)}.wikibooks.org", m.group(1)
    return f"{lang}.{CONTENT_DOMAIN}", lang


def is_content_host(host: str) -> bool:
    return bool(CONTENT_HOST_RE.match(host or ""))


def mediawiki_url_encode(title: str) -> str:
    """Encode a title the way MediaWiki writes it in URLs (spaces as underscores)."""
    return quote(title.replace(" ", "_"), safe=_MW_SAFE)


def wikisource_url(lang: str, page: str = "") -> str:
    url = "https://wikisource.org" if lang == "" else f"https://{lang}.wikisource.org"
    if page:
        url += "/wiki/" + mediawiki_url_encode(page)
    return url
