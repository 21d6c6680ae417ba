import pytest

from nrik8s.errorgroup import ErrorGroup, PopulateResult


def test_error_group_string_lists_all_errors():
    group = ErrorGroup(
        recoverable=True,
        errors=[Exception("err1"), Exception("err2"), Exception("err3")],
    )
    group.append(Exception("err4"), Exception("err5"), Exception("err6"))
    assert str(group) == "Recoverable error group: err1, err2, err3, err4, err5, err6"


def test_error_group_non_recoverable_prefix():
    group = ErrorGroup(errors=[Exception("err1")])
    assert str(group).startswith("Non-recoverable error group: ")
    assert str(group).endswith("err1")


def test_error_group_append_keeps_order():
    first, second = Exception("a"), Exception("b")
    group = ErrorGroup()
    group.append(first)
    group.append(second)
    assert group.errors == [first, second]


def test_error_group_can_be_raised():
    group = ErrorGroup([Exception("boom")], recoverable=True)
    with pytest.raises(ErrorGroup) as exc_info:
        raise group
    raised = exc_info.value
    assert raised is group
    assert group.recoverable is True
    assert [str(err) for err in group.errors] == ["boom"]
    assert str(raised) == "Recoverable error group: boom"


def test_populate_result_string():
    result = PopulateResult(errors=[Exception("err1"), Exception("err2")], populated=True)
    assert str(result) == "populate errors:, err1, err2"


def test_populate_result_defaults():
    result = PopulateResult()
    assert result.errors == []
    assert result.populated is False
    assert str(result) == "populate errors:"