from __future__ import annotations

import pytest

from story_planner.core.catalogs import (
    ARC_TYPES,
    FALLBACK_ARC_COLOR,
    PACING_TYPES,
    STATUS_LABELS,
    THREAD_STATUS_LABELS,
    arc_color,
)
from story_planner.core.frameworks import (
    FRAMEWORKS,
    get_framework,
    is_known_framework,
    list_frameworks,
    templates_for,
)


@pytest.mark.parametrize(
    ("name", "expected_count"),
    [
        ("three-act", 8),
        ("save-the-cat", 15),
        ("heros-journey", 12),
        ("seven-point", 7),
        ("story-circle", 8),
        ("custom", 0),
    ],
)
def test_framework_template_counts(name: str, expected_count: int) -> None:
    assert len(templates_for(name)) == expected_count


def test_seven_point_templates_match_published_structure() -> None:
    templates = templates_for("seven-point")
    assert [template.name for template in templates] == [
        "Hook",
        "Plot Turn 1",
        "Pinch 1",
        "Midpoint",
        "Pinch 2",
        "Plot Turn 2",
        "Resolution",
    ]
    assert [template.target_percent for template in templates] == [0, 15, 30, 50, 70, 85, 95]


def test_unknown_framework_has_no_templates() -> None:
    assert templates_for("snowflake") == ()
    assert get_framework("snowflake") is None
    assert not is_known_framework("snowflake")


def test_catalog_templates_are_in_range() -> None:
    for framework in list_frameworks():
        ids = [template.template_id for template in framework.beats]
        assert len(ids) == len(set(ids)), framework.key
        for template in framework.beats:
            assert 0 <= template.target_percent <= 100
            assert template.act_number in {1, 2, 3}


def test_catalog_is_read_only() -> None:
    with pytest.raises(TypeError):
        FRAMEWORKS["custom"] = FRAMEWORKS["three-act"]  # type: ignore[index]


def test_arc_color_uses_catalog_with_fallback() -> None:
    assert arc_color("main") == ARC_TYPES["main"].color
    assert arc_color("not-a-type") == FALLBACK_ARC_COLOR


def test_status_catalogs_cover_every_state() -> None:
    assert set(PACING_TYPES) == {"action", "reaction", "transition", "exposition"}
    assert list(STATUS_LABELS) == [
        "idea",
        "planned",
        "in-progress",
        "drafted",
        "revised",
        "complete",
    ]
    assert set(THREAD_STATUS_LABELS) == {
        "setup",
        "developing",
        "climax",
        "resolved",
        "abandoned",
    }
