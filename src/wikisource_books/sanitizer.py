from __future__ import annotations

import re

# Page markup is passed through untouched apart from comments: Wikisource
# layout relies on inline styles and presentational tags.
_RE_COMMENT = re.compile(r"<!--.*?-->", re.S)
_RE_BODY = re.compile(r"<body\b[^>]*>(.*)</body\s*>", re.S | re.I)


def strip_comments(html_text: str) -> str:
    return _RE_COMMENT.sub("", html_text)


def extract_body(html_text: str) -> str:
    """Inner HTML of ``<body>`` for full documents; fragments come back as-is."""
    m = _RE_BODY.search(html_text)
    return m.group(1) if m else html_text
