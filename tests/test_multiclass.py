import logging

from rules.multiclass import class_level_map, proficiency_bonus, total_level
from rules.schemas import ClassLevel


def _classes(*pairs: tuple[str, int]) -> list[ClassLevel]:
    return [ClassLevel(name=name, level=level) for name, level in pairs]


def test_fighter_rogue_multiclass() -> None:
    classes = _classes(("fighter", 3), ("rogue", 2))

    assert total_level(classes) == 5
    assert class_level_map(classes) == {"fighter": 3, "rogue": 2}
    assert proficiency_bonus(classes) == 3


def test_single_class() -> None:
    classes = _classes(("wizard", 1))

    assert total_level(classes) == 1
    assert proficiency_bonus(classes) == 2


def test_duplicate_class_keeps_last_level() -> None:
    classes = _classes(("fighter", 3), ("cleric", 1), ("fighter", 5))

    assert class_level_map(classes) == {"fighter": 5, "cleric": 1}
    assert total_level(classes) == 9


def test_total_level_above_twenty_degrades_to_top_band(caplog) -> None:
    classes = _classes(("fighter", 20), ("rogue", 20), ("wizard", 20))

    with caplog.at_level(logging.WARNING, logger="rules.multiclass"):
        bonus = proficiency_bonus(classes)

    assert bonus == 6
    assert "outside" in caplog.text
