"""
Record Extraction

Pulls content records out of the platform's data files. JSON files are parsed
directly; JavaScript data modules are parsed into an AST with esprima and the
exported array literal is evaluated without executing any code.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

import esprima

from ..errors import ErrorHandler, ExtractionError, RecordValidationError
from ..logging_config import log_context
from ..models import ContentType, validate_record

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".js", ".mjs", ".cjs")


@dataclass
class ContentRecord:
    """A record payload plus where it came from."""
    data: Dict[str, Any]
    content_type: ContentType
    source_path: str
    position: int = 0

    @property
    def id(self) -> Optional[str]:
        return self.data.get("id")

    @property
    def name(self) -> Optional[str]:
        return self.data.get("name")

    @property
    def slug(self) -> Optional[str]:
        return self.data.get("slug")

    @property
    def source_label(self) -> str:
        return f"{self.source_path}[{self.position}]"

    @property
    def display_name(self) -> str:
        return self.name or self.slug or self.id or self.source_label


class _Unsupported:
    """Marker for AST values that are not plain data."""

    def __repr__(self):
        return "<unsupported>"


UNSUPPORTED = _Unsupported()


def _to_plain(node: Any) -> Any:
    """Turn esprima node objects into plain dicts and lists."""
    if node is None or isinstance(node, (str, int, float, bool)):
        return node
    if isinstance(node, tuple) and hasattr(type(node), "_asdict"):
        return {key: _to_plain(value) for key, value in node._asdict().items()}
    if isinstance(node, (list, tuple)):
        return [_to_plain(item) for item in node]
    if isinstance(node, dict):
        return {key: _to_plain(value) for key, value in node.items()}
    if hasattr(node, "__dict__"):
        return {key: _to_plain(value) for key, value in vars(node).items()}
    return node


def evaluate_literal(node: Optional[Dict[str, Any]]) -> Any:
    """
    Evaluate a literal expression node.

    Objects, arrays, strings, numbers, booleans, null/undefined, unary +/-,
    template literals without substitutions and string concatenation are
    supported. Anything else evaluates to UNSUPPORTED.
    """
    if not node:
        return UNSUPPORTED

    node_type = node.get("type")

    if node_type == "Literal":
        if node.get("regex"):
            return node.get("raw")
        value = node.get("value")
        # Numeric literals come back as floats; keep "2758" an int
        raw = node.get("raw") or ""
        if isinstance(value, float) and value.is_integer() and raw.isdigit():
            return int(value)
        return value

    if node_type == "ArrayExpression":
        items = []
        for element in node.get("elements") or []:
            if element is None or element.get("type") == "SpreadElement":
                continue
            value = evaluate_literal(element)
            if value is not UNSUPPORTED:
                items.append(value)
        return items

    if node_type == "ObjectExpression":
        result = {}
        for prop in node.get("properties") or []:
            if prop.get("type") != "Property" or prop.get("method"):
                continue
            key = _property_key(prop)
            if key is None:
                continue
            value = evaluate_literal(prop.get("value"))
            if value is UNSUPPORTED or value is None and _is_undefined(prop.get("value")):
                continue
            result[key] = value
        return result

    if node_type == "TemplateLiteral":
        if node.get("expressions"):
            return UNSUPPORTED
        parts = []
        for quasi in node.get("quasis") or []:
            value = quasi.get("value") or {}
            cooked = value.get("cooked")
            parts.append(cooked if cooked is not None else value.get("raw", ""))
        return "".join(parts)

    if node_type == "UnaryExpression":
        argument = evaluate_literal(node.get("argument"))
        operator = node.get("operator")
        if isinstance(argument, (int, float)) and not isinstance(argument, bool):
            if operator == "-":
                return -argument
            if operator == "+":
                return argument
        if operator == "!" and argument is not UNSUPPORTED:
            return not argument
        return UNSUPPORTED

    if node_type == "BinaryExpression" and node.get("operator") == "+":
        left = evaluate_literal(node.get("left"))
        right = evaluate_literal(node.get("right"))
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        return UNSUPPORTED

    if _is_undefined(node):
        return None

    return UNSUPPORTED


def _is_undefined(node: Optional[Dict[str, Any]]) -> bool:
    return bool(node) and node.get("type") == "Identifier" and node.get("name") == "undefined"


def _property_key(prop: Dict[str, Any]) -> Optional[str]:
    key = prop.get("key") or {}
    if key.get("type") == "Identifier" and not prop.get("computed"):
        return key.get("name")
    if key.get("type") == "Literal":
        value = key.get("value")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    return None


def _is_module_exports(node: Dict[str, Any]) -> bool:
    if not node or node.get("type") != "MemberExpression" or node.get("computed"):
        return False
    obj = node.get("object") or {}
    prop = node.get("property") or {}
    return obj.get("name") == "module" and prop.get("name") == "exports"


def find_exported_array(program: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Locate the array literal a JS data module exposes.

    Order: ``export default``, ``module.exports =``, exported ``const`` and
    finally the first top-level array declaration. Exported identifiers are
    resolved to their top-level declaration, exported objects to their first
    array-valued property.
    """
    declared: Dict[str, Dict[str, Any]] = {}
    declared_order: List[Dict[str, Any]] = []
    exported: List[Dict[str, Any]] = []
    default_export = None
    commonjs_export = None

    def collect_declaration(declaration: Dict[str, Any], is_exported: bool):
        for declarator in declaration.get("declarations") or []:
            target = declarator.get("id") or {}
            init = declarator.get("init")
            if target.get("type") != "Identifier" or not init:
                continue
            declared[target["name"]] = init
            if init.get("type") == "ArrayExpression":
                declared_order.append(init)
                if is_exported:
                    exported.append(init)

    for statement in program.get("body") or []:
        statement_type = statement.get("type")

        if statement_type == "VariableDeclaration":
            collect_declaration(statement, is_exported=False)
        elif statement_type == "ExportNamedDeclaration":
            declaration = statement.get("declaration") or {}
            if declaration.get("type") == "VariableDeclaration":
                collect_declaration(declaration, is_exported=True)
        elif statement_type == "ExportDefaultDeclaration":
            default_export = statement.get("declaration")
        elif statement_type == "ExpressionStatement":
            expression = statement.get("expression") or {}
            if (expression.get("type") == "AssignmentExpression"
                    and _is_module_exports(expression.get("left"))):
                commonjs_export = expression.get("right")

    def resolve(node: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not node:
            return None
        if node.get("type") == "Identifier":
            node = declared.get(node.get("name"))
            if not node:
                return None
        if node.get("type") == "ArrayExpression":
            return node
        if node.get("type") == "ObjectExpression":
            for prop in node.get("properties") or []:
                if prop.get("type") != "Property":
                    continue
                value = prop.get("value") or {}
                if value.get("type") == "Identifier" or prop.get("shorthand"):
                    value = declared.get(value.get("name") or (prop.get("key") or {}).get("name"), {})
                if value.get("type") == "ArrayExpression":
                    return value
        return None

    for candidate in (default_export, commonjs_export):
        found = resolve(candidate)
        if found is not None:
            return found

    if exported:
        return exported[0]
    if declared_order:
        return declared_order[0]
    return None


def _looks_like_record(data: Dict[str, Any]) -> bool:
    return isinstance(data.get("name"), str) and ("id" in data or "slug" in data)


class RecordExtractor:
    """Extracts validated content records from JSON and JS data files."""

    def __init__(self, error_handler: Optional[ErrorHandler] = None):
        self.error_handler = error_handler or ErrorHandler()
        self.stats = {
            "files_read": 0,
            "files_failed": 0,
            "records_extracted": 0,
            "records_rejected": 0,
        }

    def extract_path(self, path: Union[str, Path], content_type: ContentType,
                     recursive: bool = False) -> List[ContentRecord]:
        """Extract records from a file or from every data file in a directory."""
        path = Path(path)

        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            files = sorted(
                candidate for candidate in path.glob(pattern)
                if candidate.is_file()
                and candidate.suffix in SUPPORTED_SUFFIXES
                and candidate.name != "index.json"
                and not candidate.name.startswith(".")
            )
            records = []
            for file_path in files:
                records.extend(self.extract_file(file_path, content_type))
            return records

        if not path.exists():
            logger.warning(f"⚠️  Source not found, skipping: {path}")
            return []

        return self.extract_file(path, content_type)

    def extract_file(self, path: Union[str, Path], content_type: ContentType) -> List[ContentRecord]:
        """
        Extract records from one file.

        Never raises: read and parse failures are logged through the error
        handler and yield an empty list.
        """
        path = Path(path)
        content_type = ContentType(content_type)

        with log_context(content_type=content_type.value, source=str(path)):
            with self.error_handler.error_context(
                operation="extract_file",
                content_type=content_type.value,
                source_path=str(path),
            ):
                try:
                    raw_records = self._read_raw_records(path)
                except Exception as e:
                    self.stats["files_failed"] += 1
                    self.error_handler.handle_error(e, reraise=False)
                    return []

            self.stats["files_read"] += 1
            records = self._validate_records(raw_records, content_type, path)
            logger.info(f"📄 Extracted {len(records)} {content_type.value} records from {path}")
            return records

    def _read_raw_records(self, path: Path) -> List[Any]:
        content = path.read_text(encoding="utf-8-sig")

        if path.suffix == ".json":
            return self.records_from_json(json.loads(content), path)
        return self.records_from_javascript(content, path)

    def records_from_json(self, data: Any, path: Optional[Path] = None) -> List[Any]:
        """Top-level array, a single record object, or the first array-valued property."""
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            if _looks_like_record(data):
                return [data]
            for value in data.values():
                if isinstance(value, list):
                    return value
        raise ExtractionError(
            "no record array found in JSON document",
            source_path=str(path) if path else None,
        )

    def records_from_javascript(self, source: str, path: Optional[Path] = None) -> List[Any]:
        """Evaluate the array literal exported by a JS data module."""
        program = self._parse_javascript(source)
        array_node = find_exported_array(program)
        if array_node is None:
            raise ExtractionError(
                "no exported array literal found",
                source_path=str(path) if path else None,
            )
        return evaluate_literal(array_node)

    def _parse_javascript(self, source: str) -> Dict[str, Any]:
        try:
            tree = esprima.parseModule(source, {"tolerant": True})
        except Exception as module_error:
            # Sloppy-mode scripts (octal literals, `with`) are not valid modules
            logger.debug(f"Module parse failed, retrying as script: {module_error}")
            try:
                tree = esprima.parseScript(source, {"tolerant": True})
            except Exception as script_error:
                raise ExtractionError(
                    f"JavaScript parse error: {script_error}", cause=script_error
                ) from script_error
        return _to_plain(tree)

    def _validate_records(self, raw_records: List[Any], content_type: ContentType,
                          path: Path) -> List[ContentRecord]:
        records = []
        for position, raw in enumerate(raw_records):
            with self.error_handler.error_context(
                operation="validate_record",
                content_type=content_type.value,
                source_path=str(path),
                record_id=str(raw["id"]) if isinstance(raw, dict) and raw.get("id") is not None else None,
                metadata={"position": position},
            ):
                try:
                    data = validate_record(raw, content_type)
                except RecordValidationError as e:
                    self.stats["records_rejected"] += 1
                    self.error_handler.handle_error(e, reraise=False)
                    continue

            records.append(ContentRecord(
                data=data,
                content_type=content_type,
                source_path=str(path),
                position=position,
            ))
            self.stats["records_extracted"] += 1
        return records
