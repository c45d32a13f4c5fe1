"""Product images for common fly patterns."""

from typing import Optional

_BIGY = "https://bigyflyco.com/cdn/shop"
_PARACHUTE_ADAMS = f"{_BIGY}/products/barbless_parachute_adams_grande.jpg?v=1685019878"
_ADAMS = (
    "https://www.theflystop.com/media/catalog/product/cache/"
    "b207e434f641ad23ca4e49cabb5d5fcb/a/d/adams-fly-fishing-flies-dry-flies_1.jpg"
)
_CADDIS_BROWN = f"{_BIGY}/products/elk-hair-caddis-brown_57d73d8d-3d66-4d33-a343-17fc4ef20241.jpg?v=1684932066"
_CADDIS_ORANGE = f"{_BIGY}/files/elk-hair-caddis-orange_thmbnl.jpg?v=1686641337"
_CADDIS_OLIVE = f"{_BIGY}/files/elk-hair-caddis-olive_5b4b9f58-fd2f-44f1-8e0d-1939aefc2fab.jpg?v=1684992944"
_CADDIS_YELLOW = f"{_BIGY}/products/elk-hair-caddis-yellow_9123f40a-9b12-4216-9f1a-e1da99884ecc.jpg?v=1684932066"
_CADDIS_CHART = f"{_BIGY}/products/elk-hair-caddis-chart_9495fa12-4d0f-4355-9169-8e9153bf446d.jpg?v=1684932066"
_PHEASANT_TAIL = f"{_BIGY}/products/pheasant_tail_a3a11ef4-6412-4705-a22e-3e087a4d65cb_grande.jpg?v=1684932465"
_HARES_EAR = f"{_BIGY}/products/Hares_Ear_Natural_0214b814-6b70-4d18-8697-5636fe33a91d.jpg?v=1684932451"
_HARES_EAR_OLIVE = f"{_BIGY}/products/Hares_Ear_Olive_883660c6-33e7-42df-a61b-72554f2f9edc.jpg?v=1684932451"
_PRINCE = f"{_BIGY}/products/prince.jpg?v=1685019515"
_BUGGER_OLIVE = f"{_BIGY}/products/woolly_bugger_olive_821735aa-9c01-4845-8c1d-56e880ef8a0d.jpg?v=1684932580"
_BUGGER_BROWN = f"{_BIGY}/products/woolly_bugger_brown_8aac62a8-4f73-4650-826a-46945192dbe2.jpg?v=1684932580"
_BUGGER_BLACK = f"{_BIGY}/products/woolly_bugger_black_8013b259-d029-4b50-9b10-2fa374d78e62.jpg?v=1684932580"
_BUGGER_CHART = f"{_BIGY}/products/woolly_bugger_chart_fbce8987-3dbc-4c3d-aded-ba0c5533390d.jpg?v=1684932580"
_BUGGER_PURPLE = f"{_BIGY}/products/woolly_bugger_purple_7ea928c0-a968-4c72-ba52-947604ecdb50.jpg?v=1684932580"

# Lowercase pattern name -> image URL.  Order matters for partial matches.
FLY_IMAGES: dict[str, str] = {
    # dries
    "parachute adams": _PARACHUTE_ADAMS,
    "adams": _ADAMS,
    "elk hair caddis": _CADDIS_BROWN,
    "caddis": _CADDIS_BROWN,
    "stimulator": _CADDIS_ORANGE,
    "blue wing olive": _CADDIS_OLIVE,
    "bwo": _CADDIS_OLIVE,
    # nymphs
    "pheasant tail": _PHEASANT_TAIL,
    "pheasant tail nymph": _PHEASANT_TAIL,
    "hares ear": _HARES_EAR,
    "hares ear nymph": _HARES_EAR,
    "gold ribbed hares ear": _HARES_EAR,
    "prince nymph": _PRINCE,
    "prince": _PRINCE,
    "copper john": _PRINCE,
    "zebra midge": _PHEASANT_TAIL,
    "midge": _PHEASANT_TAIL,
    "san juan worm": _BUGGER_BROWN,
    "scud": _HARES_EAR_OLIVE,
    "sowbug": _HARES_EAR,
    "pats rubber legs": _BUGGER_BLACK,
    "stonefly": _BUGGER_BLACK,
    "rainbow warrior": _PHEASANT_TAIL,
    # streamers
    "woolly bugger": _BUGGER_OLIVE,
    "bugger": _BUGGER_OLIVE,
    "clouser minnow": _BUGGER_CHART,
    "clouser": _BUGGER_CHART,
    "muddler minnow": _BUGGER_BROWN,
    "muddler": _BUGGER_BROWN,
    "sculpin": _BUGGER_BROWN,
    "leech": _BUGGER_BLACK,
    "bunny leech": _BUGGER_PURPLE,
    # emergers and wets
    "soft hackle": _HARES_EAR,
    "emerger": _PHEASANT_TAIL,
    "rs2": _PHEASANT_TAIL,
    # terrestrials
    "hopper": _CADDIS_YELLOW,
    "grasshopper": _CADDIS_YELLOW,
    "ant": _BUGGER_BLACK,
    "beetle": _BUGGER_BLACK,
    "chernobyl ant": _CADDIS_CHART,
}


def fly_image_url(fly_name: str) -> Optional[str]:
    """Best image for a fly name: exact match first, then containment either way."""
    normalized = (fly_name or "").strip().lower()
    if not normalized:
        return None
    if normalized in FLY_IMAGES:
        return FLY_IMAGES[normalized]
    for pattern, url in FLY_IMAGES.items():
        if pattern in normalized or normalized in pattern:
            return url
    return None
