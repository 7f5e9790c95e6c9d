"""Centralised selectors and heuristics for World of Books listing and detail pages."""

import re

# ==== LISTING (collection grid) ====
CARD_TAG = "li"
CARD_CLASS_HINT = re.compile(r"item", re.I)
TITLE_HEADINGS = ("h3", "h2", "h4")
TITLE_CLASS = ".title, [class*='title'], [class*='Title']"
IMG = "img"
IMG_ATTRS = ("data-src", "srcset", "src")
PRICE_PATTERN = re.compile(r"[£$€](?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}")
MIN_TITLE_LENGTH = 2

# Tags whose text never renders; dropped before measuring card text.
INVISIBLE_TAGS = ("script", "style", "noscript", "template")

# ==== DETAIL (product page) ====
DESCRIPTION = (".description", "#description")
META_DESCRIPTION = "meta[name='description']"
DETAIL_ROWS = ("li", "tr")
# Label followed by a non-empty value; a bare "Author:" or "ISBN-13" line does not match.
DETAIL_LABEL = re.compile(
    r"^\s*(?P<label>isbn(?:-?1[03])?|author|publisher)(?![-\w])\s*:?\s*(?P<value>[^:\s].*)$",
    re.I,
)

# ==== SESSION (consent banner + request suppression) ====
CONSENT_BUTTON_NAME = re.compile(r"accept|allow", re.I)
BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet", "media"})
OPTIONAL_BLOCKED_RESOURCE_TYPES = frozenset({"script", "fetch", "xhr"})
BLOCKED_URL_PATTERN = re.compile(
    r"\.(?:png|jpe?g|svg|gif|webp|ico|css|woff2?|ttf|otf)(?:\?|$)", re.I
)
OPTIONAL_BLOCKED_URL_PATTERN = re.compile(r"\.(?:js|json)(?:\?|$)", re.I)
