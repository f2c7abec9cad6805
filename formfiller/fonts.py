"""Script-aware font selection for filled values.

Fonts are tried in a fixed priority order and the first one whose Unicode
ranges intersect the text wins. Mixed-script values therefore get the font of
whichever script comes first in the table, not the one covering most glyphs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import fitz

logger = logging.getLogger(__name__)

CodeRange = Tuple[int, int]


@dataclass(frozen=True)
class ScriptTest:
    """Matches text containing at least one code point inside ``ranges``."""

    ranges: Tuple[CodeRange, ...]

    def matches(self, text: str) -> bool:
        for char in text:
            point = ord(char)
            for start, end in self.ranges:
                if start <= point <= end:
                    return True
        return False


@dataclass(frozen=True)
class FontSpec:
    name: str
    filename: str
    script_test: ScriptTest


def _script(*ranges: CodeRange) -> ScriptTest:
    return ScriptTest(tuple(ranges))


LATIN_SCRIPT = _script((0x0000, 0x024F))
LATIN_FONT_NAME = "NotoSans"
BUILTIN_LATIN_NAME = "Helvetica"

# Most specific script first, Latin last.
FONT_PRIORITY: Tuple[FontSpec, ...] = (
    FontSpec("NotoSansDevanagari", "NotoSansDevanagari-Regular.ttf", _script((0x0900, 0x097F))),
    FontSpec("NotoSansBengali", "NotoSansBengali-Regular.ttf", _script((0x0980, 0x09FF))),
    FontSpec("NotoSansTamil", "NotoSansTamil-Regular.ttf", _script((0x0B80, 0x0BFF))),
    FontSpec("NotoSansTelugu", "NotoSansTelugu-Regular.ttf", _script((0x0C00, 0x0C7F))),
    FontSpec("NotoSansGujarati", "NotoSansGujarati-Regular.ttf", _script((0x0A80, 0x0AFF))),
    FontSpec("NotoSansGurmukhi", "NotoSansGurmukhi-Regular.ttf", _script((0x0A00, 0x0A7F))),
    FontSpec("NotoSansKannada", "NotoSansKannada-Regular.ttf", _script((0x0C80, 0x0CFF))),
    FontSpec("NotoSansMalayalam", "NotoSansMalayalam-Regular.ttf", _script((0x0D00, 0x0D7F))),
    FontSpec("NotoSansOriya", "NotoSansOriya-Regular.ttf", _script((0x0B00, 0x0B7F))),
    FontSpec("NotoSansSinhala", "NotoSansSinhala-Regular.ttf", _script((0x0D80, 0x0DFF))),
    FontSpec("NotoSansThai", "NotoSansThai-Regular.ttf", _script((0x0E00, 0x0E7F))),
    FontSpec("NotoNastaliqUrdu", "NotoNastaliqUrdu-Regular.ttf", _script((0x0600, 0x06FF))),
    FontSpec(LATIN_FONT_NAME, "NotoSans-Regular.ttf", LATIN_SCRIPT),
)


@dataclass
class FontAsset:
    """An embeddable font plus a measuring handle for it.

    ``buffer`` holds the font program to embed. Assets without a buffer refer
    to one of the PDF base-14 fonts through ``builtin`` (e.g. ``"helv"``).
    """

    name: str
    script_test: ScriptTest
    buffer: Optional[bytes] = None
    builtin: Optional[str] = None
    _font: fitz.Font = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.buffer is None and self.builtin is None:
            raise ValueError(f"Font asset '{self.name}' needs either a buffer or a builtin name")
        if self.buffer is not None:
            self._font = fitz.Font(fontbuffer=self.buffer)
        else:
            self._font = fitz.Font(fontname=self.builtin)

    @classmethod
    def from_builtin(cls, builtin: str, script_test: ScriptTest, name: Optional[str] = None) -> "FontAsset":
        return cls(name=name or builtin, script_test=script_test, builtin=builtin)

    def text_width(self, text: str, size: float) -> float:
        return float(self._font.text_length(text, fontsize=size))

    def ascent(self, size: float) -> float:
        return float(self._font.ascender) * size

    def descent(self, size: float) -> float:
        """Distance below the baseline, negative."""

        return float(self._font.descender) * size


class FontResolver:
    """First-match lookup over a priority-ordered list of assets."""

    def __init__(self, assets: Sequence[FontAsset]) -> None:
        self._assets: Tuple[FontAsset, ...] = tuple(assets)

    @property
    def assets(self) -> Tuple[FontAsset, ...]:
        return self._assets

    def resolve(self, text: str) -> Optional[FontAsset]:
        for asset in self._assets:
            if asset.script_test.matches(text):
                return asset
        return None

    def get(self, name: str) -> Optional[FontAsset]:
        for asset in self._assets:
            if asset.name == name:
                return asset
        return None


def load_font_assets(
    font_dir: Union[str, Path],
    specs: Iterable[FontSpec] = FONT_PRIORITY,
    builtin_latin: bool = True,
) -> List[FontAsset]:
    """Load every font in ``specs`` that exists under ``font_dir``.

    Missing or unreadable files are logged and left out, which makes their
    script unresolvable without failing the rest of the set. When no Latin
    font was loaded and ``builtin_latin`` is set, the PDF base-14 Helvetica is
    appended last so Latin values still render.
    """

    directory = Path(font_dir)
    spec_list = tuple(specs)
    assets: List[FontAsset] = []
    for spec in spec_list:
        path = directory / spec.filename
        try:
            data = path.read_bytes()
            assets.append(FontAsset(name=spec.name, script_test=spec.script_test, buffer=data))
        except FileNotFoundError:
            logger.warning("Font %s not found at %s", spec.name, path)
        except Exception as exc:
            logger.warning("Font %s could not be loaded from %s: %s", spec.name, path, exc)

    if builtin_latin and not any(asset.name == LATIN_FONT_NAME for asset in assets):
        logger.warning("No %s font loaded; using built-in Helvetica for Latin text", LATIN_FONT_NAME)
        assets.append(FontAsset.from_builtin("helv", LATIN_SCRIPT, name=BUILTIN_LATIN_NAME))

    logger.debug("Loaded %d/%d font assets from %s", len(assets), len(spec_list), directory)
    return assets


__all__ = [
    "BUILTIN_LATIN_NAME",
    "FONT_PRIORITY",
    "LATIN_SCRIPT",
    "FontAsset",
    "FontResolver",
    "FontSpec",
    "ScriptTest",
    "load_font_assets",
]
