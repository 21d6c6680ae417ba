"""Populate an integration's entities from raw groups and spec groups."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from nrik8s.definition import FetchedValues, GuessFunc, RawGroups, SpecGroups
from nrik8s.sdk import Attribute, Integration, MetricError, MetricSet, SourceType

NAMESPACE_GROUP = "namespace"
NAMESPACE_FILTERED_LABEL = "nrFiltered"


class PopulateError(Exception):
    """A problem met while populating one entity."""


@runtime_checkable
class NamespaceFilterer(Protocol):
    """Decides whether objects in a namespace are reported."""

    def is_allowed(self, namespace: str) -> bool:
        """Return True when the namespace is allowed."""


@dataclass
class IntegrationPopulateConfig:
    """Everything needed to populate an integration."""

    integration: Integration
    cluster_name: str
    k8s_version: Any
    ms_type_guesser: GuessFunc
    groups: RawGroups
    specs: SpecGroups
    filterer: NamespaceFilterer | None = None


def _populate_cluster(integration: Integration, cluster_name: str, k8s_version: Any) -> None:
    entity = integration.entity(cluster_name, "k8s:cluster")
    metric_set = entity.new_metric_set("K8sClusterSample")
    entity.inventory.set_item("cluster", "name", cluster_name)
    metric_set.set_metric("clusterName", cluster_name, SourceType.ATTRIBUTE)
    version = str(k8s_version)
    entity.inventory.set_item("cluster", "k8sVersion", version)
    metric_set.set_metric("clusterK8sVersion", version, SourceType.ATTRIBUTE)


def _metric_set_populate(
    metric_set: MetricSet,
    group_label: str,
    entity_id: str,
    groups: RawGroups,
    specs: SpecGroups,
) -> tuple[bool, list[Exception]]:
    populated = False
    errors: list[Exception] = []
    for spec in specs[group_label].specs:
        try:
            value = spec.value_func(group_label, entity_id, groups)
        except Exception as err:
            if not spec.optional:
                failure = PopulateError(
                    f"cannot fetch value for metric {json.dumps(spec.name)}: {err}"
                )
                failure.__cause__ = err
                errors.append(failure)
            continue

        items = value.items() if isinstance(value, FetchedValues) else [(spec.name, value)]
        for name, item in items:
            try:
                metric_set.set_metric(name, item, spec.type)
            except MetricError as err:
                if not spec.optional:
                    errors.append(
                        PopulateError(
                            f"cannot set metric {name} with value {item} in metric set, {err}"
                        )
                    )
                continue
            populated = True

    return populated, errors


def integration_populator(config: IntegrationPopulateConfig) -> tuple[bool, list[Exception]]:
    """Create entities and metric sets for every specified group; return (populated, errors)."""
    populated = False
    errors: list[Exception] = []
    entity_type = ""

    for group_label, entities in config.groups.items():
        spec_group = config.specs.get(group_label)
        if spec_group is None:
            continue

        for entity_id, metrics in entities.items():
            extra_attributes: list[Attribute] = []

            if config.filterer is not None and spec_group.namespace_getter is not None:
                namespace = spec_group.namespace_getter(metrics)
                allowed = config.filterer.is_allowed(namespace)
                if group_label != NAMESPACE_GROUP:
                    if not allowed:
                        continue
                else:
                    extra_attributes = [
                        Attribute(NAMESPACE_FILTERED_LABEL, str(not allowed).lower())
                    ]

            ms_entity_id = entity_id
            if spec_group.id_generator is not None:
                try:
                    ms_entity_id = spec_group.id_generator(group_label, entity_id, config.groups)
                except Exception as err:
                    errors.append(
                        PopulateError(f"error generating entity ID for {entity_id}: {err}")
                    )
                    continue

            if spec_group.type_generator is not None:
                try:
                    entity_type = spec_group.type_generator(
                        group_label, entity_id, config.groups, config.cluster_name
                    )
                except Exception as err:
                    errors.append(
                        PopulateError(f"error generating entity type for {entity_id}: {err}")
                    )
                    continue

            try:
                entity = config.integration.entity(ms_entity_id, entity_type)
            except Exception as err:
                errors.append(err)
                continue

            extra_attributes.extend(
                [
                    Attribute("clusterName", config.cluster_name),
                    Attribute("displayName", entity.metadata.name),
                ]
            )
            entity.add_attributes(*extra_attributes)

            guesser = spec_group.ms_type_guesser or config.ms_type_guesser
            try:
                ms_type = guesser(group_label)
            except Exception as err:
                errors.append(err)
                continue

            metric_set = entity.new_metric_set(ms_type)
            was_populated, populate_errors = _metric_set_populate(
                metric_set, group_label, entity_id, config.groups, config.specs
            )
            errors.extend(
                PopulateError(f"error populating metric for entity ID {entity_id}: {err}")
                for err in populate_errors
            )
            populated = populated or was_populated

    if populated:
        try:
            _populate_cluster(config.integration, config.cluster_name, config.k8s_version)
        except Exception as err:
            errors.append(err)

    return populated, errors