"""
Filter predicate composer.

Turns a FilterSelection into one storage-agnostic predicate: an AND of one
clause per active facet, the stock tolerance clause and the ``active``
status clause (always last), optionally ANDed with an OR of free-text
search branches.

Gender handling has three layers:
    - explicit gender tokens constrain the ``gender`` field directly
    - genders implied by category selection keys are used when no explicit
      gender was given
    - a gender inferred from the search text adds a loose gender clause and
      becomes the ``strict_gender`` the caller post-filters with
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import collapse_whitespace, tokenize_words
from discovery.category_mapper import CategorySelectionMapper
from discovery.constants.facet_tables import CONDITION_SYNONYMS
from discovery.constants.gender_patterns import SYNONYM_TO_GENDER
from discovery.facet_cleaner import canonical_condition
from discovery.gender import GenderDetector
from discovery.models import FilterSelection, SelectionResolution
from discovery.predicates import (
    And,
    Eq,
    Exists,
    In,
    Matches,
    Never,
    Not,
    Or,
    Predicate,
    Range,
    conjoin,
    disjoin,
)

logger = get_logger(__name__)

# preset -> (min, max, label)
PRICE_PRESETS: Dict[str, Tuple[Optional[float], Optional[float], str]] = {
    "under-25": (None, 25.0, "Under $25"),
    "25-50": (25.0, 50.0, "$25 - $50"),
    "50-100": (50.0, 100.0, "$50 - $100"),
    "100-200": (100.0, 200.0, "$100 - $200"),
    "over-200": (200.0, None, "Over $200"),
}

STRICT_GENDERS = ("men", "women", "kids")

_SEARCH_TEXT_FIELDS = ("name", "description", "tags", "colors.name", "sizes.name")


def word_pattern(value: str) -> str:
    """Escaped pattern matching ``value`` as a whole word or phrase."""
    return rf"(?<!\w){re.escape(value)}(?!\w)"


def exact_pattern(value: str) -> str:
    return rf"^{re.escape(value)}$"


def _keyword_pattern(words) -> str:
    return r"\b(?:" + "|".join(re.escape(w) for w in sorted(words)) + r")\b"


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo or timezone.utc)


@dataclass(frozen=True)
class ComposedPredicate:
    """The composed query plus the gender facts the caller needs afterwards."""

    filters: And
    search: Optional[Predicate] = None
    implied_genders: Tuple[str, ...] = ()
    strict_gender: Optional[str] = None
    debug: Mapping[str, Any] = field(default_factory=dict)

    @property
    def predicate(self) -> Predicate:
        return conjoin([self.search, self.filters])

    def evaluate(self, record: Any) -> bool:
        return self.predicate.evaluate(record)

    def to_dict(self) -> Dict[str, Any]:
        return self.predicate.to_dict()


class PredicateComposer:
    """
    Composes FilterSelections into predicates.

    Usage:
        composer = PredicateComposer(mapper)
        composed = composer.compose(FilterSelection(colors=["Red"], gender=["women"]))
        store.query_items(composed.predicate, sort_spec, 0, 20)
    """

    def __init__(
        self,
        mapper: CategorySelectionMapper,
        detector: Optional[GenderDetector] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.mapper = mapper
        self.detector = detector or GenderDetector()
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def compose(
        self,
        selection: Union[FilterSelection, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> ComposedPredicate:
        if not isinstance(selection, FilterSelection):
            selection = FilterSelection.from_params(dict(selection), settings=self._settings)

        status = Eq("active", True)
        if selection.is_empty():
            return ComposedPredicate(filters=And((status,)), debug={"empty_selection": True})

        now = now or self._clock()
        debug: Dict[str, Any] = {}
        clauses: List[Predicate] = []

        resolutions = self.mapper.resolve_selections(selection.categories) if selection.categories else []
        implied = self._implied_genders(resolutions)
        explicit = [g.value for g in selection.gender]

        gender_clause = self._gender_clause(explicit, implied)
        if gender_clause is not None:
            clauses.append(gender_clause)

        if selection.categories:
            clauses.append(self._category_clause(resolutions))
            debug["categories"] = {
                r.selection: {"ids": len(r.category_ids), "source": r.source.value} for r in resolutions
            }
        if selection.brands:
            brand_ids = self.mapper.resolve_brands(selection.brands)
            clauses.append(self._brand_clause(brand_ids))
            debug["brand_ids"] = len(brand_ids)

        if selection.colors:
            clauses.append(Matches("colors.name", tuple(word_pattern(c) for c in selection.colors)))
        if selection.sizes:
            clauses.append(Matches("sizes.name", tuple(exact_pattern(s) for s in selection.sizes)))
        condition_clause = self._condition_clause(selection.conditions)
        if condition_clause is not None:
            clauses.append(condition_clause)

        price_clause = self._price_clause(selection)
        if price_clause is not None:
            clauses.append(price_clause)

        if not selection.include_sold_out:
            clauses.append(Or((
                Not(Eq("sold_out", True)),
                Exists("sold_out", False),
                Range("stock_quantity", gt=0),
            )))
        if selection.in_stock:
            clauses.append(Or((Range("stock_quantity", gt=0), Exists("stock_quantity", False))))
        if selection.is_sale:
            clauses.append(Eq("is_sale", True))
        if selection.is_new:
            clauses.append(Range("created_at", gte=now - timedelta(days=self._settings.new_item_window_days)))
        if selection.start_date is not None or selection.end_date is not None:
            clauses.append(Range(
                "created_at",
                gte=selection.start_date,
                lte=end_of_day(selection.end_date) if selection.end_date else None,
            ))
        if selection.min_views is not None or selection.max_views is not None:
            clauses.append(Range("views", gte=selection.min_views, lte=selection.max_views))
        if selection.tags:
            clauses.append(Matches("tags", tuple(word_pattern(t) for t in selection.tags)))

        clauses.append(status)

        search, search_gender, search_debug = self._search(selection.search)
        debug.update(search_debug)

        strict_gender = self._strict_gender(explicit, implied, search_gender)
        debug["genders"] = explicit or list(implied)
        debug["strict_gender"] = strict_gender

        logger.debug("Composed predicate", clauses=len(clauses), has_search=search is not None, debug=debug)
        return ComposedPredicate(
            filters=And(tuple(clauses)),
            search=search,
            implied_genders=tuple(implied),
            strict_gender=strict_gender,
            debug=debug,
        )

    # ------------------------------------------------------------------------
    # Facet clauses
    # ------------------------------------------------------------------------

    @staticmethod
    def _implied_genders(resolutions: Sequence[SelectionResolution]) -> List[str]:
        implied: List[str] = []
        for resolution in resolutions:
            if resolution.gender is not None and resolution.gender.value not in implied:
                implied.append(resolution.gender.value)
        return implied

    @staticmethod
    def _gender_clause(explicit: List[str], implied: List[str]) -> Optional[Predicate]:
        if explicit:
            return In("gender", tuple(explicit))
        if implied:
            # Unisex items belong in every gendered browse.
            return In("gender", tuple(implied) + ("unisex",))
        return None

    @staticmethod
    def _strict_gender(explicit: List[str], implied: List[str], searched: Optional[str]) -> Optional[str]:
        in_effect = explicit or implied
        if in_effect:
            gendered = {g for g in in_effect if g != "unisex"}
            if len(gendered) == 1 and len(in_effect) == 1:
                return gendered.pop()
            return None
        return searched

    @staticmethod
    def _category_clause(resolutions: Sequence[SelectionResolution]) -> Predicate:
        ids: List[str] = []
        for resolution in resolutions:
            for category_id in resolution.category_ids:
                if category_id not in ids:
                    ids.append(category_id)
        if not ids:
            logger.warning(
                "No categories matched selection",
                selections=[r.selection for r in resolutions],
            )
            return Never("categories")
        return Or((In("category_refs.category_id", tuple(ids)), In("primary_category_id", tuple(ids))))

    @staticmethod
    def _brand_clause(brand_ids: List[str]) -> Predicate:
        if not brand_ids:
            return Never("brands")
        return Or((In("brand_refs.brand_id", tuple(brand_ids)), In("primary_brand_id", tuple(brand_ids))))

    @staticmethod
    def _condition_clause(conditions: Sequence[str]) -> Optional[Predicate]:
        labels: List[str] = []
        for condition in conditions:
            label = canonical_condition(condition)
            if label is not None and label not in labels:
                labels.append(label)
        if not labels:
            return None
        return Matches("condition", tuple(exact_pattern(label) for label in labels))

    @staticmethod
    def _price_clause(selection: FilterSelection) -> Optional[Predicate]:
        low, high = selection.min_price, selection.max_price
        if low is None and high is None and selection.price_range:
            preset = PRICE_PRESETS.get(selection.price_range)
            if preset is not None:
                low, high = preset[0], preset[1]
            elif selection.price_range != "all":
                logger.warning("Unknown price preset", price_range=selection.price_range)
        if low is None and high is None:
            return None
        if low is not None and high is not None and low > high:
            low, high = high, low
        return Range("price", gte=low, lte=high)

    # ------------------------------------------------------------------------
    # Free-text search
    # ------------------------------------------------------------------------

    def _search(self, term: Optional[str]):
        if not term:
            return None, None, {}

        debug: Dict[str, Any] = {"search": term}
        detected = self.detector.detect(term)
        gender_clause = None
        search_gender = None
        text = term
        if detected in STRICT_GENDERS:
            search_gender = detected
            gender_clause = self.loose_gender_clause(detected)
            text = collapse_whitespace(self.detector.strip_gender_terms(term))
            debug["detected_gender"] = detected
            debug["residual_search"] = text

        branches: List[Predicate] = []
        if text:
            regex = re.escape(text)
            compiled = re.compile(regex, re.IGNORECASE)
            branches.extend(Matches(path, (regex,)) for path in _SEARCH_TEXT_FIELDS)

            category_ids = self.mapper.category_ids_matching(compiled)
            if category_ids:
                branches.append(In("category_refs.category_id", tuple(category_ids)))
                branches.append(In("primary_category_id", tuple(category_ids)))
            brand_ids = self.mapper.brand_ids_matching(compiled)
            if brand_ids:
                branches.append(In("brand_refs.brand_id", tuple(brand_ids)))
                branches.append(In("primary_brand_id", tuple(brand_ids)))

            for gender in self._genders_in(text):
                branches.append(Eq("gender", gender))
            for condition in self._conditions_in(text):
                branches.append(Eq("condition", condition))

        search = conjoin([disjoin(branches) if branches else None, gender_clause])
        if isinstance(search, And) and not search.children:
            search = None
        return search, search_gender, debug

    def loose_gender_clause(self, gender: str) -> Predicate:
        """
        Storage-side approximation of the strict filter: some keyword in the
        item text (or a gender-named category, or the gender field), and no
        exclusion word in name or description.
        """
        rule = self.detector.patterns.rules[gender]
        keywords = _keyword_pattern(rule.keywords)
        positives: List[Predicate] = [
            Matches("name", (keywords,)),
            Matches("description", (keywords,)),
            Matches("tags", (keywords,)),
            Eq("gender", gender),
        ]
        category_ids = self.mapper.category_ids_matching(re.compile(keywords, re.IGNORECASE))
        if category_ids:
            positives.append(In("category_refs.category_id", tuple(category_ids)))

        clause: List[Predicate] = [Or(tuple(positives))]
        if rule.exclusions:
            exclusions = _keyword_pattern(rule.exclusions)
            clause.append(Not(Or((Matches("name", (exclusions,)), Matches("description", (exclusions,))))))
        return conjoin(clause)

    @staticmethod
    def _genders_in(text: str) -> List[str]:
        genders: List[str] = []
        for token in tokenize_words(text):
            gender = SYNONYM_TO_GENDER.get(token)
            if gender is not None and gender not in genders:
                genders.append(gender)
        return genders

    @staticmethod
    def _conditions_in(text: str) -> List[str]:
        lowered = f" {collapse_whitespace(text.lower())} "
        found: List[str] = []
        # Longest synonyms first so "very good" wins over "good".
        for synonym in sorted(CONDITION_SYNONYMS, key=len, reverse=True):
            if f" {synonym} " in lowered:
                label = CONDITION_SYNONYMS[synonym]
                if label not in found:
                    found.append(label)
                lowered = lowered.replace(f" {synonym} ", " ")
        return found


def compose_predicate(
    selection: Union[FilterSelection, Mapping[str, Any]],
    mapper: CategorySelectionMapper,
    now: Optional[datetime] = None,
) -> ComposedPredicate:
    return PredicateComposer(mapper).compose(selection, now=now)
