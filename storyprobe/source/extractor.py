"""Static extraction of a Python service's observable surface.

Walks a source tree, parses every module with :mod:`ast` and collects:

- HTTP endpoints declared with FastAPI/Flask/aiohttp style routing
  (``@router.post("/users")``, ``@app.route("/x", methods=["GET"])``,
  ``app.add_url_rule(...)``, ``app.router.add_get(...)``)
- data models (pydantic models, dataclasses, ORM models, TypedDicts)
- database tables referenced by SQL string literals and ``__tablename__``
- message-bus topics passed to producer calls
"""

import ast
import logging
import os
import re
from pathlib import Path

from storyprobe.core.exceptions import ExtractionError
from storyprobe.source.models import EndpointInfo, ModelInfo, SourceModel

logger = logging.getLogger(__name__)

TABLE_PATTERN = re.compile(r"(?i)\b(?:FROM|INTO|UPDATE|JOIN|TABLE)\s+(\w+)")

HTTP_DECORATORS = {
    "get": "GET",
    "post": "POST",
    "put": "PUT",
    "patch": "PATCH",
    "delete": "DELETE",
}

AIOHTTP_ROUTES = {
    "add_get": "GET",
    "add_post": "POST",
    "add_put": "PUT",
    "add_patch": "PATCH",
    "add_delete": "DELETE",
    "add_route": "ANY",
}

ROUTER_FACTORIES = {"APIRouter": "prefix", "Blueprint": "url_prefix"}

SQL_CALLS = {
    "execute",
    "executemany",
    "exec_driver_sql",
    "fetch",
    "fetchrow",
    "fetchval",
    "query",
    "text",
}

TOPIC_CALLS = {"send", "send_and_wait", "produce", "publish", "create_topic", "NewTopic"}

MODEL_BASES = {"BaseModel", "Model", "Base", "DeclarativeBase", "SQLModel", "TypedDict"}

SKIP_DIRS = {
    "__pycache__",
    "node_modules",
    "site-packages",
    "venv",
    "env",
    "build",
    "dist",
    "tests",
    "test",
}


def _string(node: ast.AST | None) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _call_name(func: ast.AST) -> str | None:
    if isinstance(func, ast.Attribute):
        return func.attr
    if isinstance(func, ast.Name):
        return func.id
    return None


def _handler_name(node: ast.AST | None) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        owner = node.value.id if isinstance(node.value, ast.Name) else "_"
        return f"{owner}.{node.attr}"
    if isinstance(node, ast.Lambda):
        return "<anonymous>"
    return "<unknown>"


def _keyword(call: ast.Call, name: str) -> ast.AST | None:
    for keyword in call.keywords:
        if keyword.arg == name:
            return keyword.value
    return None


def _methods(call: ast.Call) -> list[str]:
    node = _keyword(call, "methods")
    if not isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        return []
    return [value.upper() for value in map(_string, node.elts) if value]


class _SurfaceVisitor(ast.NodeVisitor):
    def __init__(self) -> None:
        self.endpoints: list[EndpointInfo] = []
        self.models: list[ModelInfo] = []
        self.tables: set[str] = set()
        self.topics: set[str] = set()
        self._prefixes: dict[str, str] = {}

    def begin_module(self) -> None:
        """Forget router names bound by the previous module."""
        self._prefixes = {}

    # Routers

    def visit_Assign(self, node: ast.Assign) -> None:
        value = node.value
        prefix = None
        if isinstance(value, ast.Call):
            factory = _call_name(value.func)
            if factory in ROUTER_FACTORIES:
                prefix = _string(_keyword(value, ROUTER_FACTORIES[factory])) or ""

        for target in node.targets:
            if not isinstance(target, ast.Name):
                continue
            if prefix is None:
                # rebinding drops any router prefix the name carried
                self._prefixes.pop(target.id, None)
            else:
                self._prefixes[target.id] = prefix.rstrip("/")

        for target in node.targets:
            if isinstance(target, ast.Name) and target.id == "__tablename__":
                table = _string(value)
                if table:
                    self.tables.add(table.lower())

        self.generic_visit(node)

    def _prefixed(self, owner: ast.AST, path: str) -> str:
        if isinstance(owner, ast.Name):
            return self._prefixes.get(owner.id, "") + path
        return path

    # Endpoints

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._route_decorators(node)
        self.generic_visit(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._route_decorators(node)
        self.generic_visit(node)

    def _route_decorators(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        comment = (ast.get_docstring(node) or "").split("\n", 1)[0]

        for decorator in node.decorator_list:
            if not isinstance(decorator, ast.Call) or not isinstance(decorator.func, ast.Attribute):
                continue
            path = _string(decorator.args[0]) if decorator.args else _string(_keyword(decorator, "path"))
            if not path or not path.startswith("/"):
                continue

            attr = decorator.func.attr
            path = self._prefixed(decorator.func.value, path)

            if attr in HTTP_DECORATORS:
                methods = [HTTP_DECORATORS[attr]]
            elif attr in ("route", "api_route"):
                methods = _methods(decorator) or ["ANY"]
            else:
                continue

            for method in methods:
                self.endpoints.append(
                    EndpointInfo(method=method, path=path, handler=node.name, comment=comment)
                )

    def _route_call(self, node: ast.Call, name: str) -> None:
        path = _string(node.args[0]) if node.args else None
        if not path or not path.startswith("/"):
            return

        if name in AIOHTTP_ROUTES and len(node.args) >= 2:
            self.endpoints.append(
                EndpointInfo(
                    method=AIOHTTP_ROUTES[name], path=path, handler=_handler_name(node.args[1])
                )
            )
        elif name == "add_url_rule":
            view = _keyword(node, "view_func") or (node.args[2] if len(node.args) >= 3 else None)
            for method in _methods(node) or ["ANY"]:
                self.endpoints.append(
                    EndpointInfo(method=method, path=path, handler=_handler_name(view))
                )

    # Models

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        if self._is_model(node):
            fields: list[str] = []
            for statement in node.body:
                if isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                    name = statement.target.id
                    if not name.startswith("_") and name != "model_config":
                        fields.append(f"{name} {ast.unparse(statement.annotation)}")
                elif isinstance(statement, ast.Assign) and isinstance(statement.value, ast.Call):
                    if _call_name(statement.value.func) in ("Column", "mapped_column"):
                        column_type = (
                            ast.unparse(statement.value.args[0]) if statement.value.args else "Column"
                        )
                        fields.extend(
                            f"{target.id} {column_type}"
                            for target in statement.targets
                            if isinstance(target, ast.Name)
                        )
            self.models.append(ModelInfo(name=node.name, fields=tuple(fields)))

        self.generic_visit(node)

    @staticmethod
    def _is_model(node: ast.ClassDef) -> bool:
        for base in node.bases:
            if _call_name(base) in MODEL_BASES:
                return True
        for decorator in node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            if _call_name(target) == "dataclass":
                return True
        return False

    # SQL tables, topics, imperative routes

    def visit_Call(self, node: ast.Call) -> None:
        name = _call_name(node.func)

        if name in SQL_CALLS:
            for arg in node.args:
                sql = _string(arg)
                if sql:
                    self.tables.update(match.lower() for match in TABLE_PATTERN.findall(sql))
                    break

        if name in TOPIC_CALLS:
            topic = _string(node.args[0]) if node.args else _string(_keyword(node, "topic"))
            if name == "NewTopic" and not topic:
                topic = _string(_keyword(node, "name"))
            if topic:
                self.topics.add(topic)

        if name in AIOHTTP_ROUTES or name == "add_url_rule":
            self._route_call(node, name)

        self.generic_visit(node)


class SourceExtractor:
    """Extracts a :class:`SourceModel` from a Python code base."""

    def __init__(self, skip_dirs: set[str] | None = None) -> None:
        self.skip_dirs = SKIP_DIRS if skip_dirs is None else skip_dirs

    def extract(self, project_path: str | Path) -> SourceModel:
        """Analyze every Python module below ``project_path``.

        Args:
            project_path: Root directory of the service under test

        Returns:
            Immutable source model

        Raises:
            ExtractionError: If the path does not exist or cannot be walked
        """
        root = Path(project_path)
        if not root.is_dir():
            raise ExtractionError("not a directory", path=str(project_path))

        visitor = _SurfaceVisitor()
        parsed = 0
        for path in self._iter_modules(root):
            try:
                tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
            except (SyntaxError, UnicodeDecodeError, ValueError) as e:
                logger.debug(f"Skipping unparseable module {path}: {e}")
                continue
            except OSError as e:
                raise ExtractionError(str(e), path=str(project_path)) from e
            visitor.begin_module()
            visitor.visit(tree)
            parsed += 1

        source_model = SourceModel(
            endpoints=tuple(visitor.endpoints),
            models=tuple(visitor.models),
            tables=frozenset(visitor.tables),
            topics=frozenset(visitor.topics),
        )
        logger.info(f"Analyzed {parsed} modules in {root}: {source_model.summary}")
        return source_model

    def _iter_modules(self, root: Path):
        def on_error(error: OSError) -> None:
            raise ExtractionError(str(error), path=str(root))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(
                d for d in dirnames if d not in self.skip_dirs and not d.startswith(".")
            )
            for filename in sorted(filenames):
                if not filename.endswith(".py"):
                    continue
                if filename.startswith("test_") or filename.endswith("_test.py"):
                    continue
                if filename == "conftest.py":
                    continue
                yield Path(dirpath) / filename


def extract_source_model(project_path: str | Path) -> SourceModel:
    """Convenience wrapper around :class:`SourceExtractor`."""
    return SourceExtractor().extract(project_path)
