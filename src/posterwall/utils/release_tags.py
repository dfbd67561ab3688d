"""Scene-release tag handling for media filenames.

Release names carry quality, source, codec and audio tags after the real
title (``The.Matrix.1999.1080p.BluRay.x264-GROUP``). Everything from the
first such tag onwards is treated as release noise.
"""

import re
from typing import Optional

QUALITY_TAG_PATTERN = re.compile(
    r"(?<![a-z0-9])("
    r"2160p|1080p|1080i|720p|576p|480p|4k|uhd|"
    r"bluray|blu-ray|bdrip|brrip|web-dl|webdl|webrip|hdtv|dvdrip|hdrip|remux|"
    r"x264|x265|h\.?264|h\.?265|hevc|xvid|divx|avc|10bit|8bit|hi10p|hdr|"
    r"aac|eac3|ac3|dts-hd|dts|truehd|atmos|flac"
    r")(?![a-z0-9])",
    re.IGNORECASE,
)

EDITION_TAG_PATTERN = re.compile(
    r"(?<![a-z0-9])("
    r"extended[ ._-]?(cut|edition)?|unrated|remastered|"
    r"director'?s[ ._-]?cut|theatrical[ ._-]?cut"
    r")(?![a-z0-9])",
    re.IGNORECASE,
)

AUDIO_CHANNELS_PATTERN = re.compile(r"(?<![0-9])[257][ .]1(?![0-9])")

BRACKETED_PATTERN = re.compile(r"\[[^\]]*\]|\{[^}]*\}|【[^】]*】|\([^)]*\)|（[^）]*）")

BRACKETED_YEAR_PATTERN = re.compile(r"^[\[(（{【]\s*(?:19|20)\d{2}\s*[\])）}】]$")

SEPARATOR_PATTERN = re.compile(r"[._\-]")

STRAY_BRACKETS_PATTERN = re.compile(r"[\[\](){}【】「」『』（）]")


def find_quality_tag(text: str) -> Optional[int]:
    """Find the position of the first quality tag.

    Args:
        text: Filename stem or fragment.

    Returns:
        Start offset of the first tag, or None when there is none.
    """
    match = QUALITY_TAG_PATTERN.search(text)
    return match.start() if match else None


def truncate_at_quality_tag(text: str) -> str:
    """Drop everything from the first quality tag onwards."""
    position = find_quality_tag(text)
    if position is None:
        return text
    return text[:position]


def clean_title(text: str) -> str:
    """Turn a raw filename fragment into a display title.

    Bracketed segments, residual quality/edition/audio tags and stray
    brackets are removed, and the ``.``, ``_`` and ``-`` separators become
    spaces.

    Args:
        text: Raw fragment, e.g. ``"Show.Name."``.

    Returns:
        Cleaned title, possibly empty.
    """
    text = BRACKETED_PATTERN.sub(" ", text)
    text = QUALITY_TAG_PATTERN.sub(" ", text)
    text = EDITION_TAG_PATTERN.sub(" ", text)
    text = AUDIO_CHANNELS_PATTERN.sub(" ", text)
    text = SEPARATOR_PATTERN.sub(" ", text)
    text = STRAY_BRACKETS_PATTERN.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


def strip_bracketed_noise(text: str) -> str:
    """Blank out bracketed segments other than a bare release year.

    ``[Group] Movie Title [1080p] (2021)`` keeps ``(2021)`` so the year can
    still be found, while group and quality tags in brackets are dropped.
    """

    def replace(match: "re.Match[str]") -> str:
        if BRACKETED_YEAR_PATTERN.match(match.group(0)):
            return match.group(0)
        return " " * len(match.group(0))

    return BRACKETED_PATTERN.sub(replace, text)
