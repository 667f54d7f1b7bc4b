from configdiff.utils import cell_text, filter_names, matches_pattern, normalize_value, safe_name


def test_safe_name_replaces_and_trims() -> None:
    assert safe_name("Run Profile: Full Import$") == "Run_Profile_Full_Import"


def test_safe_name_empty_returns_unnamed() -> None:
    assert safe_name("") == "unnamed"


def test_normalize_value_maps_none_to_empty() -> None:
    assert normalize_value(None) == ""
    assert normalize_value(0) == 0


def test_cell_text() -> None:
    assert cell_text(None) == ""
    assert cell_text(True) == "Yes"
    assert cell_text(False) == "No"
    assert cell_text(3) == "3"


def test_matches_pattern_like_and_regex() -> None:
    assert matches_pattern("Metaverse Object Types", "Metaverse%")
    assert matches_pattern("Run Profile A", "Run Profile _")
    assert not matches_pattern("metaverse", "Metaverse%")
    assert matches_pattern("Agent HR", "re:^Agent")
    assert not matches_pattern("My Agent", "re:^Agent")


def test_filter_names_keeps_order() -> None:
    names = ["Synchronization Rules", "Metaverse Object Types", "Metaverse Options", "Run Profiles"]
    assert filter_names(names, [], []) == names
    assert filter_names(names, ["Metaverse%", "Run%"], ["%Options"]) == [
        "Metaverse Object Types",
        "Run Profiles",
    ]
