"""Tests for feature file parsing and tag filtering."""
import pytest

from mobile_automation.features import (
    GherkinParseError,
    collect_feature_files,
    matches_tags,
    parse_feature,
    parse_feature_file,
)

FEATURE = """\
# Calculator checks
@android @calculator
Feature: Calculator
  Basic arithmetic on the Android calculator.

  Background:
    Given I launch the Android Calculator app
    And the calculator is ready for input

  @smoke
  Scenario: Simple addition
    When I perform addition of 2 plus 3
    Then the result should be 5

  Scenario Outline: Operation <op>
    When I perform "<op>" of <a> and <b>
    Then the result should be <result>

    @fast
    Examples: quick
      | op          | a | b | result |
      | addition    | 1 | 2 | 3      |
      | subtraction | 9 | 4 | 5      |
"""


def test_parse_feature():
    feature = parse_feature(FEATURE, uri="features/calculator.feature")
    assert feature.name == "Calculator"
    assert feature.tags == ("@android", "@calculator")
    assert feature.description == "Basic arithmetic on the Android calculator."
    assert [s.text for s in feature.background] == [
        "I launch the Android Calculator app",
        "the calculator is ready for input",
    ]
    assert [s.name for s in feature.scenarios] == ["Simple addition", "Operation addition", "Operation subtraction"]


def test_scenarios_inherit_background_and_tags():
    simple = parse_feature(FEATURE, uri="calc.feature").scenarios[0]
    assert simple.tags == ("@android", "@calculator", "@smoke")
    assert [s.keyword for s in simple.steps] == ["Given", "And", "When", "Then"]
    assert simple.steps[2].text == "I perform addition of 2 plus 3"
    assert simple.feature_name == "Calculator"
    assert simple.id == f"calc.feature:{simple.line}"


def test_outline_rows_expand():
    """Each Examples row becomes a scenario with placeholders substituted."""
    _, first, second = parse_feature(FEATURE).scenarios
    assert first.steps[2].text == 'I perform "addition" of 1 and 2'
    assert first.steps[3].text == "the result should be 3"
    assert second.steps[3].text == "the result should be 5"
    assert first.tags == ("@android", "@calculator", "@fast")
    assert first.line != second.line


def test_star_and_but_keywords():
    feature = parse_feature("Feature: F\n  Scenario: S\n    * I swipe up\n    But I should not see \"x\"\n")
    assert [(s.keyword, s.text) for s in feature.scenarios[0].steps] == [
        ("*", "I swipe up"),
        ("But", 'I should not see "x"'),
    ]


def test_scenario_description_is_kept():
    feature = parse_feature(
        "Feature: F\n  Scenario: S\n    A description line for the scenario.\n    Given I swipe up\n"
    )
    (scenario,) = feature.scenarios
    assert scenario.description == "A description line for the scenario."
    assert [s.text for s in scenario.steps] == ["I swipe up"]


def test_step_data_table_and_doc_string():
    """Step arguments are attached to the step; outline placeholders are filled in."""
    feature = parse_feature(
        "Feature: F\n"
        "  Scenario Outline: S\n"
        "    Given the users\n"
        "      | name   | role   |\n"
        "      | <name> | staff  |\n"
        "    Then the message is\n"
        '      """\n'
        "      Hello <name>\n"
        '      """\n'
        "    Examples:\n"
        "      | name |\n"
        "      | ada  |\n"
    )
    (scenario,) = feature.scenarios
    table_step, doc_step = scenario.steps
    assert table_step.data_table == (("name", "role"), ("ada", "staff"))
    assert table_step.argument == table_step.data_table
    assert doc_step.doc_string == "Hello ada"
    assert doc_step.argument == "Hello ada"


def test_rules_inherit_their_background_and_tags():
    feature = parse_feature(
        "@app\n"
        "Feature: F\n"
        "  Background:\n"
        "    Given I am on the Explorer page\n"
        "\n"
        "  @search\n"
        "  Rule: Searching\n"
        "    Background:\n"
        "      Given I hide the keyboard\n"
        "\n"
        "    Scenario: Find an article\n"
        '      When I search for "Python"\n'
    )
    (scenario,) = feature.scenarios
    assert scenario.tags == ("@app", "@search")
    assert [s.text for s in scenario.steps] == [
        "I am on the Explorer page",
        "I hide the keyboard",
        'I search for "Python"',
    ]


@pytest.mark.parametrize(
    "text,line",
    [
        ("Scenario: orphan\n", 1),
        ("Feature: A\n  Scenario: S\n    Given x\n      | a |\n      | b | c |\n", 5),
        ("Feature: A\n  Scenario: S\n    Given x\n  Background:\n    Given y\n", 4),
        ("Feature: A\n  Scenario Outline: O\n    Given <x>\n  Examples:\n    | x |\n    | 1 | 2 |\n", 6),
        ("Feature: A\n  Scenario: S\n    Given x\n    Whatever this is\n", 4),
    ],
)
def test_parse_errors_report_path_and_line(text, line):
    with pytest.raises(GherkinParseError) as excinfo:
        parse_feature(text, uri="broken.feature")
    assert excinfo.value.path == "broken.feature"
    assert excinfo.value.line == line
    assert str(excinfo.value).startswith(f"broken.feature:{line}:")


def test_empty_file_has_no_feature():
    with pytest.raises(GherkinParseError, match="No Feature found"):
        parse_feature("# just a comment\n", uri="empty.feature")


def test_collect_feature_files(tmp_path):
    (tmp_path / "b.feature").write_text("Feature: B\n", encoding="utf-8")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "a.feature").write_text("Feature: A\n", encoding="utf-8")
    (nested / "notes.txt").write_text("ignored", encoding="utf-8")

    files = collect_feature_files([tmp_path])
    assert files == [tmp_path / "b.feature", nested / "a.feature"]
    assert parse_feature_file(files[1]).name == "A"
    with pytest.raises(FileNotFoundError):
        collect_feature_files([tmp_path / "missing"])


@pytest.mark.parametrize(
    "expressions,expected",
    [
        ([], True),
        (["@smoke"], True),
        (["@regression"], False),
        (["@smoke,@regression"], True),
        (["@smoke", "@ios"], True),
        (["@smoke", "@android"], False),
        (["~@wip"], True),
        (["~@smoke"], False),
        (["@regression,~@wip"], True),
    ],
)
def test_matches_tags(expressions, expected):
    assert matches_tags(("@smoke", "@ios"), expressions) is expected
