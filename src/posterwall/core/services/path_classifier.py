"""Path classifier service implementation."""

import re
from typing import Iterable, Optional, Tuple

from ...utils import (
    clean_title,
    find_quality_tag,
    strip_bracketed_noise,
    truncate_at_quality_tag,
)
from ..interfaces import IPathClassifier
from ..models import MediaGuess, MediaKind

EPISODE_CONFIDENCE = 0.9
MOVIE_CONFIDENCE = 0.8
UNKNOWN_CONFIDENCE = 0.2

DEFAULT_EXTENSIONS = (
    ".mkv",
    ".mp4",
    ".avi",
    ".mov",
    ".wmv",
    ".flv",
    ".webm",
    ".m4v",
    ".ts",
    ".m2ts",
    ".rmvb",
)

# S01E02, s1e2, S01.E02
SEASON_EPISODE_PATTERN = re.compile(r"(?<![a-z0-9])s(\d{1,3})[ ._-]?e(\d{1,4})(?![0-9])", re.I)

# 第1季第2集
CJK_SEASON_EPISODE_PATTERN = re.compile(r"第\s*(\d{1,3})\s*季.*?第\s*(\d{1,4})\s*集")

# 1x02
CROSS_EPISODE_PATTERN = re.compile(r"(?<![a-z0-9])(\d{1,2})x(\d{1,3})(?![a-z0-9])", re.I)

# A year must be delimited so that 1080p or 1920x1080 never qualify
YEAR_PATTERN = re.compile(r"(?:(?<=[\s._\-\[(（])|^)((?:19|20)\d{2})(?=[\s._\-\])）]|$)")

SEASON_FOLDER_PATTERN = re.compile(
    r"^((season|series|staffel|saison)[ ._-]*\d{1,3}|s\d{1,3}|第.*季|specials?)$", re.I
)


def split_trailing_year(fragment: str) -> Tuple[str, Optional[int]]:
    """Separate a release year that ends a series title.

    ``Doctor.Who.2005.`` gives ``("Doctor Who", 2005)``; a fragment that is
    only a year (``1923``) is kept as the title.
    """
    years = list(YEAR_PATTERN.finditer(fragment))
    if years:
        year_match = years[-1]
        title = clean_title(fragment[: year_match.start()])
        if title and not clean_title(fragment[year_match.end() :]):
            return title, int(year_match.group(1))
    return clean_title(fragment), None


class PathClassifier(IPathClassifier):
    """Heuristic filename classifier.

    Episodes are recognised by season/episode tokens, movies by a release
    year, anything else is an unknown item with low confidence.
    """

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        root_folders: Iterable[str] = (),
    ) -> None:
        """Initialize path classifier.

        Args:
            extensions: Media extensions stripped from filenames.
            root_folders: Share folders that never name a series (e.g. ``tv``).
        """
        self._extensions = {ext.lower() for ext in (extensions or DEFAULT_EXTENSIONS)}
        self._root_folders = {
            segment.casefold()
            for folder in root_folders
            for segment in folder.replace("\\", "/").split("/")
            if segment
        }

    def classify(self, relative_path: str, filename: str) -> MediaGuess:
        """Classify a media file from its location and name.

        Args:
            relative_path: Directory of the file relative to the share root.
            filename: File name including extension.

        Returns:
            Structured media guess.
        """
        stem = self._strip_extension(filename)

        episode_guess = self._match_episode(relative_path, filename, stem)
        if episode_guess is not None:
            return episode_guess

        movie_guess = self._match_movie(relative_path, filename, stem)
        if movie_guess is not None:
            return movie_guess

        title = clean_title(truncate_at_quality_tag(stem)) or clean_title(stem) or stem
        return MediaGuess(
            raw_path=relative_path,
            raw_filename=filename,
            kind=MediaKind.UNKNOWN,
            title=title,
            confidence=UNKNOWN_CONFIDENCE,
        )

    def _strip_extension(self, filename: str) -> str:
        """Remove a known media extension."""
        base, dot, suffix = filename.rpartition(".")
        if dot and base and f".{suffix.lower()}" in self._extensions:
            return base
        return filename

    def _match_episode(self, relative_path: str, filename: str, stem: str) -> Optional[MediaGuess]:
        """Detect an episodic token and build an episode guess."""
        match = (
            SEASON_EPISODE_PATTERN.search(stem)
            or CJK_SEASON_EPISODE_PATTERN.search(stem)
            or CROSS_EPISODE_PATTERN.search(stem)
        )
        if match is None:
            return None

        prefix = strip_bracketed_noise(stem[: match.start()])
        title, year = split_trailing_year(truncate_at_quality_tag(prefix))
        if not title:
            title, year = self._series_from_path(relative_path)

        return MediaGuess(
            raw_path=relative_path,
            raw_filename=filename,
            kind=MediaKind.EPISODE,
            title=title,
            year=year,
            season=int(match.group(1)),
            episode=int(match.group(2)),
            confidence=EPISODE_CONFIDENCE if title else UNKNOWN_CONFIDENCE,
        )

    def _match_movie(self, relative_path: str, filename: str, stem: str) -> Optional[MediaGuess]:
        """Detect a release year and build a movie guess."""
        stem = strip_bracketed_noise(stem)
        limit = find_quality_tag(stem)
        if limit is None:
            limit = len(stem)

        years = [m for m in YEAR_PATTERN.finditer(stem) if m.start() < limit]
        if not years:
            return None

        year_match = years[-1]
        title = clean_title(stem[: year_match.start()])
        if not title:
            # "1917.mkv": the number is the title, not a year
            return None

        return MediaGuess(
            raw_path=relative_path,
            raw_filename=filename,
            kind=MediaKind.MOVIE,
            title=title,
            year=int(year_match.group(1)),
            confidence=MOVIE_CONFIDENCE,
        )

    def _series_from_path(self, relative_path: str) -> Tuple[str, Optional[int]]:
        """Use the nearest non-season parent folder as the series title and year."""
        parts = [part for part in relative_path.replace("\\", "/").split("/") if part]
        for part in reversed(parts):
            if part.casefold() in self._root_folders:
                break
            if SEASON_FOLDER_PATTERN.match(part.strip()):
                continue
            title, year = split_trailing_year(truncate_at_quality_tag(part))
            if title:
                return title, year
        return "", None
