# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data files: plain JSON / YAML documents and the schema-backed route, store
and service modules.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any, ClassVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from formwork.errors import InvalidTargetError, NameConflictError, NotFoundError, ParseError
from formwork.files.base import FileType, SourceFile

# ###############
# Public Interface
# ###############


class Route(BaseModel):
    """One entry of the route table; also used as page data."""

    model_config = ConfigDict(extra="forbid")

    path: str
    name: str | None = None
    view: str | None = None


class RouteTable(BaseModel):
    """Document model of ``routes.yaml``."""

    model_config = ConfigDict(extra="forbid")

    routes: list[Route] = Field(default_factory=list)


class StoreModule(BaseModel):
    """Document model of a store module: state names and their initial value code."""

    model_config = ConfigDict(extra="forbid")

    state: dict[str, Any] = Field(default_factory=dict)


class ServiceModule(BaseModel):
    """Document model of a service module: shared base config and functions."""

    model_config = ConfigDict(extra="forbid")

    base: dict[str, Any] = Field(default_factory=dict)
    functions: dict[str, dict[str, Any]] = Field(default_factory=dict)


class DataFile(SourceFile):
    """A plain JSON or YAML document addressed by dotted key paths."""

    type = FileType.DATA

    @property
    def data(self) -> Any:
        """A copy of the parsed document."""
        return copy.deepcopy(self._state)

    @property
    def is_yaml(self) -> bool:
        return PurePosixPath(self.filename).suffix.lower() in (".yaml", ".yml")

    def get_value(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted *path* (``"packages.react"``), or *default*."""
        node = self._state
        for key in _split_path(path):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return copy.deepcopy(node)

    def set_value(self, path: str, value: Any) -> None:
        """Set the value at a dotted *path*, creating intermediate mappings."""
        with self._mutation() as data:
            if not isinstance(data, dict):
                raise InvalidTargetError(f"{self.filename}: document root is not a mapping")
            keys = _split_path(path)
            node = data
            for key in keys[:-1]:
                child = node.get(key)
                if not isinstance(child, dict):
                    child = {}
                    node[key] = child
                node = child
            node[keys[-1]] = copy.deepcopy(value)

    def delete_value(self, path: str) -> None:
        """Delete the value at a dotted *path*.

        Raises:
            NotFoundError: If nothing is stored at *path*.
        """
        with self._mutation() as data:
            keys = _split_path(path)
            node = data
            for key in keys[:-1]:
                node = node.get(key) if isinstance(node, dict) else None
            if not isinstance(node, dict) or keys[-1] not in node:
                raise NotFoundError(f"{self.filename}: no value at {path!r}")
            del node[keys[-1]]

    def _parse(self, code: str) -> Any:
        if self.is_yaml:
            data = _load_yaml(code, self.filename)
            return {} if data is None else data
        try:
            return json.loads(code) if code.strip() else {}
        except json.JSONDecodeError as exc:
            raise ParseError(f"{self.filename}: {exc.msg}", exc.lineno, exc.colno) from exc

    def _render(self, state: Any) -> str:
        if self.is_yaml:
            return _dump_yaml(state)
        return json.dumps(state, indent=2, ensure_ascii=False) + "\n"


class SchemaFile(SourceFile):
    """A YAML document validated against a pydantic model."""

    schema: ClassVar[type[BaseModel]]

    def _parse(self, code: str) -> Any:
        data = _load_yaml(code, self.filename)
        if data is None:
            data = {}
        try:
            return self.schema.model_validate(data)
        except ValidationError as exc:
            raise ParseError(f"{self.filename}: {exc}") from exc

    def _render(self, state: Any) -> str:
        return _dump_yaml(state.model_dump(mode="json", exclude_defaults=True))

    def _copy_state(self, state: Any) -> Any:
        return state.model_copy(deep=True)


class RouteFile(SchemaFile):
    """The route table mapping URL paths to view files."""

    type = FileType.ROUTE
    schema = RouteTable

    def list_routes(self) -> list[Route]:
        return [route.model_copy() for route in self._state.routes]

    def get_route(self, path: str) -> Route:
        """Return the route for *path*.

        Raises:
            NotFoundError: If no route has this path.
        """
        return self._state.routes[self._route_index(self._state, path)].model_copy()

    def find_route_by_view(self, view: str) -> Route | None:
        for route in self._state.routes:
            if route.view == view:
                return route.model_copy()
        return None

    def add_route(self, route: Route) -> None:
        """Append a route.

        Raises:
            NameConflictError: If a route with the same path exists.
        """
        with self._mutation() as table:
            if any(r.path == route.path for r in table.routes):
                raise NameConflictError(f"Route {route.path!r} already exists")
            table.routes.append(route.model_copy())

    def update_route(self, path: str, route: Route) -> None:
        """Replace the route at *path* with *route*, keeping its position.

        Raises:
            NotFoundError: If no route has *path*.
            NameConflictError: If *route* moves onto another existing path.
        """
        with self._mutation() as table:
            index = self._route_index(table, path)
            if route.path != path and any(r.path == route.path for r in table.routes):
                raise NameConflictError(f"Route {route.path!r} already exists")
            table.routes[index] = route.model_copy()

    def remove_route(self, path: str) -> None:
        with self._mutation() as table:
            del table.routes[self._route_index(table, path)]

    def rewrite_views(self, renames: Mapping[str, str]) -> None:
        """Point routes at renamed view files."""
        with self._mutation() as table:
            for route in table.routes:
                if route.view in renames:
                    route.view = renames[route.view]

    def _route_index(self, table: RouteTable, path: str) -> int:
        for index, route in enumerate(table.routes):
            if route.path == path:
                return index
        raise NotFoundError(f"{self.filename}: no route {path!r}")


class StoreFile(SchemaFile):
    """A store module: named state variables with initial value code."""

    type = FileType.STORE
    schema = StoreModule

    @property
    def name(self) -> str:
        return PurePosixPath(self.filename).stem

    def list_state(self) -> dict[str, Any]:
        return dict(self._state.state)

    def add_state(self, name: str, init_value: Any) -> None:
        """Add a state variable.

        Raises:
            NameConflictError: If the variable exists.
        """
        with self._mutation() as store:
            if name in store.state:
                raise NameConflictError(f"State {self.name}.{name} already exists")
            store.state[name] = init_value

    def update_state(self, name: str, init_value: Any) -> None:
        with self._mutation() as store:
            if name not in store.state:
                raise NotFoundError(f"No state {self.name}.{name}")
            store.state[name] = init_value

    def remove_state(self, name: str) -> None:
        with self._mutation() as store:
            if name not in store.state:
                raise NotFoundError(f"No state {self.name}.{name}")
            del store.state[name]


class ServiceFile(SchemaFile):
    """A service module: request functions sharing a base configuration."""

    type = FileType.SERVICE
    schema = ServiceModule

    @property
    def name(self) -> str:
        return PurePosixPath(self.filename).stem

    @property
    def base_config(self) -> dict[str, Any]:
        return copy.deepcopy(self._state.base)

    def list_functions(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._state.functions)

    def get_function(self, name: str) -> dict[str, Any]:
        """Return a copy of the function config.

        Raises:
            NotFoundError: If the function does not exist.
        """
        if name not in self._state.functions:
            raise NotFoundError(f"No service function {self.name}.{name}")
        return copy.deepcopy(self._state.functions[name])

    def add_function(self, name: str, config: Mapping[str, Any]) -> None:
        self.add_functions({name: config})

    def add_functions(self, configs: Mapping[str, Mapping[str, Any]]) -> None:
        """Add several functions at once.

        Raises:
            NameConflictError: If any of them exists; none is added then.
        """
        with self._mutation() as service:
            for name, config in configs.items():
                if name in service.functions:
                    raise NameConflictError(f"Service function {self.name}.{name} already exists")
                service.functions[name] = copy.deepcopy(dict(config))

    def update_function(self, name: str, payload: Mapping[str, Any]) -> None:
        """Merge *payload* into an existing function config."""
        with self._mutation() as service:
            if name not in service.functions:
                raise NotFoundError(f"No service function {self.name}.{name}")
            service.functions[name].update(copy.deepcopy(dict(payload)))

    def remove_function(self, name: str) -> None:
        with self._mutation() as service:
            if name not in service.functions:
                raise NotFoundError(f"No service function {self.name}.{name}")
            del service.functions[name]

    def update_base_config(self, config: Mapping[str, Any]) -> None:
        """Merge *config* into the shared base configuration."""
        with self._mutation() as service:
            service.base.update(copy.deepcopy(dict(config)))


# ################
# Implementation
# ################


def _split_path(path: str) -> list[str]:
    keys = [key for key in path.split(".") if key]
    if not keys:
        raise ValueError(f"Invalid key path {path!r}")
    return keys


def _load_yaml(code: str, filename: str) -> Any:
    try:
        return yaml.safe_load(code)
    except yaml.MarkedYAMLError as exc:
        mark = exc.problem_mark
        line, column = (mark.line + 1, mark.column + 1) if mark is not None else (0, 0)
        raise ParseError(f"{filename}: {exc.problem}", line, column) from exc
    except yaml.YAMLError as exc:
        raise ParseError(f"{filename}: {exc}") from exc


def _dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
