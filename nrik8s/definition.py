"""Metric specifications and functions that fetch values from raw groups."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from nrik8s.sdk import SourceType

RawMetrics = dict[str, Any]
RawGroups = dict[str, dict[str, RawMetrics]]

FetchFunc = Callable[[str, str, RawGroups], Any]
TransformFunc = Callable[[Any], Any]
EntityIDGeneratorFunc = Callable[[str, str, RawGroups], str]
EntityTypeGeneratorFunc = Callable[[str, str, RawGroups, str], str]
NamespaceGetterFunc = Callable[[RawMetrics], str]
GuessFunc = Callable[[str], str]


class FetchError(LookupError):
    """A value could not be found in the raw groups."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class FetchedValues(dict):
    """Several named values produced by a single fetch."""


@dataclass
class Spec:
    """How to obtain and report one metric."""

    name: str
    value_func: FetchFunc
    type: SourceType
    optional: bool = False


@dataclass
class SpecGroup:
    """Specs sharing entity identity and naming logic."""

    specs: list[Spec] = field(default_factory=list)
    id_generator: EntityIDGeneratorFunc | None = None
    type_generator: EntityTypeGeneratorFunc | None = None
    namespace_getter: NamespaceGetterFunc | None = None
    ms_type_guesser: GuessFunc | None = None


SpecGroups = dict[str, SpecGroup]


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def from_raw(metric_key: str) -> FetchFunc:
    """Fetch a metric as it appears in the raw groups."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        try:
            group = groups[group_label]
        except KeyError:
            raise FetchError(f"group {_quote(group_label)} not found") from None
        try:
            entity = group[entity_id]
        except KeyError:
            raise FetchError(f"entity {_quote(entity_id)} not found") from None
        try:
            return entity[metric_key]
        except KeyError:
            raise FetchError(f"metric {_quote(metric_key)} not found") from None

    return fetch


def transform(fetch_func: FetchFunc, transform_func: TransformFunc) -> FetchFunc:
    """Apply transform_func to whatever fetch_func returns."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        return transform_func(fetch_func(group_label, entity_id, groups))

    return fetch


def _is_separator(char: str) -> bool:
    if char.isascii():
        return not (char.isalnum() or char == "_")
    if char.isalpha() or char.isdigit():
        return False
    return char.isspace()


def _title(text: str) -> str:
    result = []
    previous = " "
    for char in text:
        result.append(char.upper() if _is_separator(previous) else char)
        previous = char
    return "".join(result)


def k8s_metric_set_type_guesser(group_label: str) -> str:
    """Build the event type name from a dash-separated group label."""
    sample_name = "".join(_title(part) for part in group_label.split("-"))
    return f"K8s{sample_name}Sample"