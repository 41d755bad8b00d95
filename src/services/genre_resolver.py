"""
Genre resolution from one-hot category flags.

Catalog records carry ~30 boolean/0-1 category fields. Cross-genre titles may
set several, so resolution walks a fixed, ordered table and the first set flag
wins. The table mirrors the API's field names exactly, including the
"Dcoumentaries" spelling, which is the actual field name on catalog records.
"""
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

OTHER_GENRE = "Other"

# (flag field, display label), in priority order
DEFAULT_GENRE_FLAGS: tuple[tuple[str, str], ...] = (
    ("Action", "Action"),
    ("Adventure", "Adventure"),
    ("AnimeSeriesInternationalTVShows", "Anime Series International TV Shows"),
    (
        "BritishTVShowsDocuseriesInternationalTVShows",
        "British TV Shows Docuseries International TV Shows",
    ),
    ("Children", "Children"),
    ("Comedy", "Comedy"),
    ("ComedyDramasInternationalMovies", "Comedy Dramas International Movies"),
    ("ComedyRomanticMovies", "Comedy Romantic Movies"),
    ("CrimeTVShowsDocuseries", "Crime TV Shows Docuseries"),
    ("Dcoumentaries", "Dcoumentaries"),
    ("DocumentariesInternationalMoves", "Documentaries International Moves"),
    ("Docuseries", "Docuseries"),
    ("Drama", "Drama"),
    ("DramaInternationalMovies", "Drama International Movies"),
    ("DramaRomanticMovies", "Drama Romantic Movies"),
    ("FamilyMovies", "Family Movies"),
    ("Fantasy", "Fantasy"),
    ("Horror", "Horror"),
    ("InternationalMoviesThrillers", "International Movies Thrillers"),
    (
        "InternationalTVShowsRomanticTVShowsTVDramas",
        "International TV Shows Romantic TV Shows TV Dramas",
    ),
    ("KidsTV", "Kids' TV"),
    ("LanguageTVShows", "Language TV Shows"),
    ("Musicals", "Musicals"),
    ("NatureTV", "Nature TV"),
    ("RealityTV", "Reality TV"),
    ("Spirituality", "Spirituality"),
    ("TVAction", "TV Action"),
    ("TVComedies", "TV Comedies"),
    ("TVDramas", "TV Dramas"),
    ("TalkShowsTVComedies", "Talk Shows TV Comedies"),
    ("Thriller", "Thriller"),
)

GenrePredicate = Callable[[Mapping[str, Any]], bool]


def is_flag_set(value: Any) -> bool:
    """A flag is set when it is `True` or the number 1. Strings never count."""
    return isinstance(value, bool | int | float) and value == 1


def _camel_case(name: str) -> str:
    """camelCase as the API's JSON serializer writes it: "TVDramas" -> "tvDramas"."""
    chars = list(name)
    for i, ch in enumerate(chars):
        if not ch.isupper():
            break
        # Last capital of a leading run stays upper when a lowercase letter follows
        if i > 0 and i + 1 < len(chars) and not chars[i + 1].isupper():
            break
        chars[i] = ch.lower()
    return "".join(chars)


def flag_predicate(flag: str) -> GenrePredicate:
    """
    Build a predicate testing one flag field.

    The API has served the same field as PascalCase and camelCase across
    versions, so both spellings are checked.
    """
    names = (flag, _camel_case(flag))

    def predicate(record: Mapping[str, Any]) -> bool:
        return any(is_flag_set(record.get(name)) for name in names)

    return predicate


@dataclass(frozen=True)
class GenreRule:
    """One entry of the priority table."""

    flag: str
    label: str
    matches: GenrePredicate


class GenreResolver:
    """
    Collapses category flags into exactly one display label.

    The table is configuration: pass a verified table for a different API
    schema instead of editing the default.
    """

    def __init__(self, flags: Sequence[tuple[str, str]] = DEFAULT_GENRE_FLAGS) -> None:
        """Build the ordered rule table from (flag field, label) pairs."""
        self._rules = tuple(GenreRule(flag, label, flag_predicate(flag)) for flag, label in flags)
        self._flag_by_label: dict[str, str] = {}
        for rule in self._rules:
            # First rule wins, matching resolution order
            self._flag_by_label.setdefault(rule.label.lower(), rule.flag)

    @property
    def flags(self) -> tuple[str, ...]:
        """Every flag field, in priority order."""
        return tuple(rule.flag for rule in self._rules)

    @property
    def labels(self) -> tuple[str, ...]:
        """Every display label, in priority order."""
        return tuple(rule.label for rule in self._rules)

    def resolve(self, record: Mapping[str, Any] | None) -> str:
        """Label of the first set flag, or "Other" when none is set. Never raises."""
        if not record:
            return OTHER_GENRE
        for rule in self._rules:
            if rule.matches(record):
                return rule.label
        return OTHER_GENRE

    def flag_for_label(self, label: str) -> str | None:
        """
        Flag field that resolves to a display label (case-insensitive).

        Accepts the flag name itself too, so admin input of either form maps
        onto the same field.
        """
        key = label.strip().lower()
        if key in self._flag_by_label:
            return self._flag_by_label[key]
        for rule in self._rules:
            if rule.flag.lower() == key:
                return rule.flag
        return None

    def with_genre(self, record: Mapping[str, Any], label: str | None) -> dict[str, Any]:
        """
        Copy of a record whose flags are one-hot for a label.

        Every known flag is reset to 0, including camelCase copies already on
        the record, and the flag mapped from the label is set to 1. An unknown
        or empty label leaves all flags 0, which resolves to "Other".
        """
        selected = self.flag_for_label(label) if label else None
        result = dict(record)
        for rule in self._rules:
            camel = _camel_case(rule.flag)
            if camel != rule.flag and camel in result:
                result[camel] = 0
            result[rule.flag] = int(rule.flag == selected)
        return result
