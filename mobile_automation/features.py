"""
Feature files parsed with Cucumber's own Gherkin parser.

`gherkin-official` builds the AST and compiles it into pickles: one per
scenario or Examples row, with Background steps, tags and outline
placeholders already applied. This module turns the pickles into the
`Scenario` records the runner executes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from gherkin.errors import CompositeParserException, ParserError
from gherkin.parser import Parser
from gherkin.pickles.compiler import Compiler

DataTable = tuple[tuple[str, ...], ...]


class GherkinParseError(ValueError):
    def __init__(self, message: str, *, path: str, line: int) -> None:
        super().__init__(f"{path}:{line}: {message}")
        self.path = path
        self.line = line


@dataclass(frozen=True)
class Step:
    keyword: str
    text: str
    line: int
    data_table: Optional[DataTable] = None
    doc_string: Optional[str] = None

    @property
    def argument(self) -> Union[DataTable, str, None]:
        return self.data_table if self.data_table is not None else self.doc_string


@dataclass(frozen=True)
class Scenario:
    name: str
    tags: tuple[str, ...]
    steps: tuple[Step, ...]
    line: int
    feature_name: str = ""
    uri: str = ""
    description: str = ""

    @property
    def id(self) -> str:
        return f"{self.uri}:{self.line}"


@dataclass
class Feature:
    name: str
    tags: tuple[str, ...] = ()
    description: str = ""
    background: list[Step] = field(default_factory=list)
    scenarios: list[Scenario] = field(default_factory=list)
    uri: str = ""


def _description(node: dict[str, Any]) -> str:
    return "\n".join(line.strip() for line in (node.get("description") or "").splitlines()).strip()


def _rows(table: Optional[dict[str, Any]]) -> Optional[DataTable]:
    if not table:
        return None
    return tuple(tuple(cell["value"] for cell in row["cells"]) for row in table["rows"])


def _ast_step(node: dict[str, Any]) -> Step:
    table = node.get("dataTable")
    doc = node.get("docString")
    return Step(
        keyword=node["keyword"].strip(),
        text=node["text"],
        line=node["location"]["line"],
        data_table=_rows(table),
        doc_string=doc["content"] if doc else None,
    )


def _index_nodes(children: list[dict[str, Any]], index: dict[str, dict[str, Any]]) -> None:
    """Map AST node ids to their nodes so pickles can be traced back to lines and keywords."""
    for child in children:
        if "rule" in child:
            _index_nodes(child["rule"]["children"], index)
            continue
        node = child.get("background") or child.get("scenario")
        if node is None:
            continue
        index[node["id"]] = node
        for step_node in node["steps"]:
            index[step_node["id"]] = step_node
        for examples in node.get("examples", []):
            for row in examples.get("tableBody", []):
                index[row["id"]] = row


def _pickle_step(pickle_step: dict[str, Any], index: dict[str, dict[str, Any]]) -> Step:
    ast_step = _ast_step(index[pickle_step["astNodeIds"][0]])
    argument = pickle_step.get("argument") or {}
    table = argument.get("dataTable")
    doc = argument.get("docString")
    return Step(
        keyword=ast_step.keyword,
        text=pickle_step["text"],
        line=ast_step.line,
        data_table=_rows(table),
        doc_string=doc["content"] if doc else None,
    )


def _error_line(error: ParserError) -> int:
    errors = error.errors if isinstance(error, CompositeParserException) else [error]
    location = getattr(errors[0], "location", None) or {}
    return int(location.get("line") or 1)


def _error_message(error: ParserError) -> str:
    if isinstance(error, CompositeParserException):
        return "; ".join(str(e) for e in error.errors)
    return str(error)


def parse_feature(text: str, *, uri: str = "<string>") -> Feature:
    try:
        document = Parser().parse(text)
    except ParserError as e:
        raise GherkinParseError(_error_message(e), path=uri, line=_error_line(e)) from e

    feature_node = document.get("feature")
    if not feature_node:
        raise GherkinParseError("No Feature found", path=uri, line=1)

    document["uri"] = uri
    index: dict[str, dict[str, Any]] = {}
    _index_nodes(feature_node["children"], index)

    feature = Feature(
        name=feature_node["name"],
        tags=tuple(t["name"] for t in feature_node["tags"]),
        description=_description(feature_node),
        uri=uri,
    )
    for child in feature_node["children"]:
        if "background" in child:
            feature.background = [_ast_step(s) for s in child["background"]["steps"]]

    for pickle in Compiler().compile(document):
        scenario_node = index[pickle["astNodeIds"][0]]
        # Outline rows point at their Examples row as the last node id.
        line_node = index[pickle["astNodeIds"][-1]]
        feature.scenarios.append(
            Scenario(
                name=pickle["name"],
                tags=tuple(dict.fromkeys(t["name"] for t in pickle["tags"])),
                steps=tuple(_pickle_step(s, index) for s in pickle["steps"]),
                line=line_node["location"]["line"],
                feature_name=feature.name,
                uri=uri,
                description=_description(scenario_node),
            )
        )
    return feature


def parse_feature_file(path: str | Path) -> Feature:
    file_path = Path(path)
    return parse_feature(file_path.read_text(encoding="utf-8"), uri=str(file_path))


def collect_feature_files(paths: list[str | Path]) -> list[Path]:
    files: list[Path] = []
    for entry in paths:
        path = Path(entry)
        if path.is_dir():
            files.extend(sorted(path.rglob("*.feature")))
        elif path.is_file():
            files.append(path)
        else:
            raise FileNotFoundError(f"Feature path not found: {path}")
    return files


def matches_tags(tags: tuple[str, ...] | frozenset[str], expressions: list[str]) -> bool:
    """
    Every expression must hold. Within one expression, comma-separated terms
    are OR-ed; `~@tag` means the tag is absent.
    """
    present = set(tags)
    for expression in expressions:
        terms = [t.strip() for t in expression.split(",") if t.strip()]
        if not terms:
            continue
        if not any((t[1:] not in present) if t.startswith("~") else (t in present) for t in terms):
            return False
    return True
