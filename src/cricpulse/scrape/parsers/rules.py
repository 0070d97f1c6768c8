"""
Declarative extraction rules and ranked strategy evaluation.

Third-party markup changes without notice, so each scraper describes what
it looks for as data rather than as nested conditionals:

- FieldRule: how to pull one field out of a container element (an ordered
  list of CSS selectors, optionally an attribute, optionally a regex).
- MarkupRule: a container selector plus the field rules applied inside
  each container. A scraper keeps an ordered tuple of these; the first
  rule whose containers yield usable rows wins.
- run_strategies(): evaluates a scraper's ranked strategies (structured
  data, markup rules, free text) in order and stops at the first one that
  produces records.

Each rule can be tested on its own against a small HTML fixture.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar, Union

from bs4 import BeautifulSoup, Tag

from cricpulse.errors import ExtractionEmpty

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Selector meaning "the container element itself"
SELF = ":self"


@dataclass(frozen=True)
class FieldRule:
    """
    Extraction rule for one field.

    Attributes:
        field: Name of the field in the resulting row
        selectors: CSS selectors tried in order inside the container
        attr: Attribute to read instead of the element text
        pattern: Regex applied to the raw value; group 1 is kept when the
            pattern has a group, otherwise the whole match
        many: Collect every non-empty value (list) instead of the first
        last: Prefer the last matching element (status lines sit at the end)
    """

    field: str
    selectors: tuple[str, ...]
    attr: Optional[str] = None
    pattern: Optional[re.Pattern] = None
    many: bool = False
    last: bool = False

    def _value(self, element: Tag) -> Optional[str]:
        if self.attr:
            raw = element.get(self.attr)
            if isinstance(raw, list):
                raw = " ".join(raw)
        else:
            raw = element.get_text(" ", strip=True)
        if not raw:
            return None

        raw = " ".join(raw.split())
        if self.pattern is None:
            return raw

        match = self.pattern.search(raw)
        if not match:
            return None
        return (match.group(1) if match.re.groups else match.group(0)).strip() or None

    def extract(self, container: Tag) -> Union[Optional[str], list[str]]:
        """Apply the rule to a container. Returns a string, a list (many=True) or None."""
        collected: list[str] = []
        for selector in self.selectors:
            elements = [container] if selector == SELF else container.select(selector)
            if self.last:
                elements = list(reversed(elements))
            for element in elements:
                value = self._value(element)
                if not value:
                    continue
                if not self.many:
                    return value
                if value not in collected:
                    collected.append(value)
            if collected:
                return collected
        return collected if self.many else None


@dataclass(frozen=True)
class MarkupRule:
    """
    A container selector with the field rules applied inside each container.

    A MarkupRule may itself appear among another rule's fields; its rows
    are then nested under its name (e.g. the team rows of a match card).
    Rows missing any of the `required` fields are dropped.
    """

    name: str
    container: str
    fields: tuple[Union[FieldRule, "MarkupRule"], ...]
    required: tuple[str, ...] = ()

    @property
    def field(self) -> str:
        return self.name

    def apply(self, soup: Union[BeautifulSoup, Tag]) -> list[dict]:
        rows = []
        for container in soup.select(self.container):
            row = {rule.field: rule.extract(container) for rule in self.fields}
            if all(row.get(name) for name in self.required):
                rows.append(row)
        return rows

    def extract(self, container: Tag) -> list[dict]:
        return self.apply(container)


def apply_markup_rules(
    soup: Union[BeautifulSoup, Tag],
    rules: Sequence[MarkupRule],
    keep: Optional[Callable[[dict], bool]] = None,
) -> list[dict]:
    """
    Apply markup rules in order and return the rows of the first that matches.

    Args:
        soup: Parsed page or container
        rules: Rules in priority order
        keep: Optional row filter. It runs per rule, so a rule whose rows
              are all rejected does not shadow the rules after it.

    Returns:
        Rows (field name -> value) from the first productive rule, or []
    """
    for rule in rules:
        rows = rule.apply(soup)
        if keep is not None:
            rows = [row for row in rows if keep(row)]
        if rows:
            logger.debug(f"Markup rule '{rule.name}' matched {len(rows)} containers")
            return rows
    return []


Strategy = tuple[str, Callable[[str], list[T]]]


def run_strategies(source: str, document: str, strategies: Sequence[Strategy]) -> list[T]:
    """
    Evaluate ranked extraction strategies with early exit.

    Each strategy is a (name, callable) pair taking the raw document and
    returning a list of records. A strategy that raises is logged and
    counts as empty.

    Raises:
        ExtractionEmpty: If no strategy produced a record
    """
    for name, strategy in strategies:
        try:
            records = strategy(document)
        except Exception:
            logger.exception(f"{source}: strategy '{name}' failed")
            continue
        if records:
            logger.info(f"{source}: {len(records)} records via '{name}'")
            return records
        logger.debug(f"{source}: strategy '{name}' found nothing")

    raise ExtractionEmpty(source, f"none of {len(strategies)} strategies matched")
