import logging

import pytest

from mqspec.errors import ContainerNameError, DepthJumpError, DepthValueError
from mqspec.hierarchy import HierarchyBuilder, SpecRow, rows_from_sheet
from mqspec.model import FieldRole


def test_consecutive_depths_nest(spec_rows, build_tree):
    roots = build_tree(spec_rows((1, "a:A"), (2, "b:B"), (3, "c", "leaf", 5, "N")))

    assert len(roots) == 1
    assert roots[0].children[0].children[0].raw_name == "c"
    assert roots[0].children[0].children[0].depth == 3


def test_depth_jump_fails_with_row_context(spec_rows):
    rows = spec_rows((1, "a:A"), (3, "c", "leaf", 5, "N"))

    with pytest.raises(DepthJumpError) as excinfo:
        HierarchyBuilder(section="Request").build(rows)

    err = excinfo.value
    assert "jump from 1 to 3" in str(err)
    assert err.row == 10
    assert err.section == "Request"
    assert err.field_name == "c"


def test_return_to_depth_one_starts_new_root(spec_rows, build_tree):
    roots = build_tree(
        spec_rows(
            (1, "a:A"),
            (2, "b:B"),
            (3, "c", "", 1, "N"),
            (2, "d", "", 1, "N"),
            (1, "e", "", 1, "N"),
        )
    )

    assert [r.raw_name for r in roots] == ["a:A", "e"]
    assert [c.raw_name for c in roots[0].children] == ["b:B", "d"]
    assert roots[1].children == ()


@pytest.mark.parametrize(
    "depth, message",
    [
        (None, "Seg lvl is empty"),
        ("x", "Invalid Seg lvl format"),
        ("0", "positive integer"),
        ("-2", "positive integer"),
    ],
)
def test_bad_depth_values_fail(depth, message):
    rows = [SpecRow(row_number=9, name="FIELD", depth=depth)]

    with pytest.raises(DepthValueError, match=message) as excinfo:
        HierarchyBuilder(section="Request").build(rows)
    assert excinfo.value.row == 9


def test_excessive_depth_only_warns(spec_rows, caplog):
    rows = spec_rows((1, "a:A"), (2, "b:B"), (3, "c", "", 1, "N"))

    with caplog.at_level(logging.WARNING, logger="mqspec.hierarchy"):
        arena = HierarchyBuilder(max_nesting_depth=2, section="Request").build(rows)

    assert len(arena) == 3
    assert any("nested 3 levels deep" in rec.getMessage() for rec in caplog.records)


def test_empty_section_builds_empty_arena():
    arena = HierarchyBuilder().build([])
    assert len(arena) == 0
    assert arena.freeze() == ()


def test_rows_from_sheet_skips_blank_names():
    column_map = {"Seg lvl": 0, "Field Name": 1, "Description": 2, "Length": 3, "Messaging Datatype": 4}
    data = [
        (9, (1, "NAME", "desc", 10.0, "A/N")),
        (10, (None, None, None, None, None)),
        (11, (1, "  ", None, None, None)),
        (12, (1.0, "CODE", None, "abc", "N")),
    ]

    rows = rows_from_sheet(data, column_map)

    assert [r.name for r in rows] == ["NAME", "CODE"]
    assert rows[0].length == "10"
    assert rows[1].depth == "1"
    assert rows[1].row_number == 12


def test_scenario_plain_root_and_object(spec_rows, build_tree):
    roots = build_tree(
        spec_rows(
            (1, "DOMICILE_BRANCH", "Branch", 10, "A/N"),
            (1, "customerInfo:CustomerInfo"),
            (2, "FIRST_NAME", "Given name", 40, "A/N"),
        )
    )

    assert len(roots) == 2
    assert roots[0].role is FieldRole.PLAIN
    assert roots[0].identifier == "domicileBranch"
    assert roots[0].length == 10

    container = roots[1]
    assert container.role is FieldRole.OBJECT
    assert container.class_name == "CustomerInfo"
    assert container.identifier == "customerInfo"
    assert [c.identifier for c in container.children] == ["firstName"]


@pytest.mark.parametrize("count, role", [("0..9", FieldRole.ARRAY), ("1..1", FieldRole.OBJECT)])
def test_repeat_count_marker_decides_array(spec_rows, build_tree, count, role):
    roots = build_tree(spec_rows((1, "items:Item"), (2, "occurrenceCount", count), (2, "ITEM_CODE", "", 4, "A/N")))

    container = roots[0]
    assert container.role is role
    assert container.class_name == "Item"
    assert container.repeat_count == count
    marker = container.children[0]
    assert marker.is_marker
    assert marker.identifier is None
    assert marker.repeat_count == count
    assert [f.identifier for f in container.fields] == ["itemCode"]


def test_legacy_marker_spelling_and_group_id(spec_rows, build_tree):
    roots = build_tree(
        spec_rows(
            (1, "items:Item"),
            (2, "OCCURENCECOUNT", "1..5"),
            (2, "GroupId", "GRP1"),
            (2, "VALUE", "", 5, "N"),
        )
    )

    container = roots[0]
    assert container.is_array
    assert container.array_info.max == 5
    assert container.markers[1].group_id == "GRP1"
    assert [f.identifier for f in container.fields] == ["value"]


def test_malformed_repeat_count_keeps_object(spec_rows, build_tree, caplog):
    with caplog.at_level(logging.WARNING, logger="mqspec.classify"):
        roots = build_tree(spec_rows((1, "items:Item"), (2, "occurrenceCount", "0-9"), (2, "ITEM_CODE", "", 4, "A/N")))

    assert roots[0].is_object
    assert roots[0].repeat_count is None
    assert any("Invalid occurrenceCount format" in rec.getMessage() for rec in caplog.records)


def test_childless_container_becomes_plain(spec_rows, build_tree, caplog):
    with caplog.at_level(logging.WARNING, logger="mqspec.classify"):
        roots = build_tree(spec_rows((1, "empty:Empty"), (1, "NEXT", "", 1, "N")))

    assert roots[0].role is FieldRole.PLAIN
    assert roots[0].class_name is None
    assert any("has no non-marker children" in rec.getMessage() for rec in caplog.records)


def test_container_with_only_markers_becomes_plain(spec_rows, build_tree, caplog):
    with caplog.at_level(logging.WARNING, logger="mqspec.classify"):
        roots = build_tree(spec_rows((1, "items:Item"), (2, "occurrenceCount", "0..9"), (2, "groupid", "G1")))

    node = roots[0]
    assert node.role is FieldRole.PLAIN
    assert not node.is_array and not node.is_object
    assert node.class_name is None
    assert node.repeat_count is None
    assert [m.is_marker for m in node.children] == [True, True]
    assert any("has no non-marker children" in rec.getMessage() for rec in caplog.records)


def test_colon_name_with_length_is_plain(spec_rows, build_tree):
    roots = build_tree(spec_rows((1, "time:stamp", "", 8, "N")))

    assert roots[0].role is FieldRole.PLAIN
    assert roots[0].identifier == "timestamp"


@pytest.mark.parametrize("name", ["field:", ":Type", "a:b:c"])
def test_malformed_container_name_fails(spec_rows, build_tree, name):
    with pytest.raises(ContainerNameError, match="fieldName:ClassName") as excinfo:
        build_tree(spec_rows((1, name), (2, "X", "", 1, "N")))
    assert excinfo.value.field_name == name
