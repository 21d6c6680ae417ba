import pytest

from nrik8s.sdk import (
    Attribute,
    EntityError,
    Integration,
    Inventory,
    MetricError,
    MetricSet,
    SourceType,
)


def test_metric_set_has_event_type():
    ms = MetricSet("TestSample")
    assert ms.metrics == {"event_type": "TestSample"}


def test_gauge_accepts_numbers_and_numeric_strings():
    ms = MetricSet("TestSample")
    ms.set_metric("a", 3, SourceType.GAUGE)
    ms.set_metric("b", "4.5", SourceType.GAUGE)
    assert ms.metrics["a"] == 3
    assert ms.metrics["b"] == 4.5


def test_gauge_rejects_text():
    ms = MetricSet("TestSample")
    with pytest.raises(MetricError):
        ms.set_metric("metric_2", "metric_value_2", SourceType.GAUGE)
    assert "metric_2" not in ms.metrics


def test_attribute_requires_string():
    ms = MetricSet("TestSample")
    with pytest.raises(MetricError):
        ms.set_metric("attr", {"foo": "bar"}, SourceType.ATTRIBUTE)
    ms.set_metric("attr", "value", SourceType.ATTRIBUTE)
    assert ms.metrics["attr"] == "value"


def test_delta_of_unchanged_value_is_zero():
    ms = MetricSet("TestSample")
    ms.set_metric("d", 10, SourceType.DELTA)
    ms.set_metric("d", 10, SourceType.DELTA)
    assert ms.metrics["d"] == 0.0


def test_entity_name_and_type_required():
    integration = Integration("nr.test", "1.0.0")
    with pytest.raises(EntityError) as exc:
        integration.entity("", "playground:test")
    assert str(exc.value) == "entity name and type are required when defining one"
    assert integration.entities == []


def test_entity_is_reused_and_clear_empties():
    integration = Integration("nr.test", "1.0.0")
    first = integration.entity("entity_id_1", "playground:test")
    again = integration.entity("entity_id_1", "playground:test")
    other = integration.entity("entity_id_1", "k8s:cluster")
    assert first is again
    assert other is not first
    assert len(integration.entities) == 2
    integration.clear()
    assert integration.entities == []


def test_attributes_propagate_to_new_metric_sets():
    integration = Integration("nr.test", "1.0.0")
    entity = integration.entity("entity_id_1", "playground:test")
    entity.add_attributes(Attribute("clusterName", "playground"))
    ms = entity.new_metric_set("TestSample")
    assert ms.metrics == {"event_type": "TestSample", "clusterName": "playground"}
    assert entity.metrics == [ms]


def test_inventory_round_trip():
    inventory = Inventory()
    inventory.set_item("cluster", "name", "playground")
    inventory.set_item("cluster", "k8sVersion", "v1.15.42")
    assert inventory.items == {"cluster": {"name": "playground", "k8sVersion": "v1.15.42"}}