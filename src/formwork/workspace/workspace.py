# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""The workspace: the single entry point for editing a project.

Every public mutating method runs as one transaction. Files are snapshotted
the first time the transaction touches them; when the method raises, the
snapshots are restored and the exception propagates. When it succeeds, one
history entry is recorded for the files whose text or node ids changed, stale
selection and drag references are cleared and ``on_files_change`` is called.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, TypeVar

from formwork.errors import (
    InvalidTargetError,
    NameConflictError,
    NoSelectionError,
    NotFoundError,
    UnknownComponentError,
)
from formwork.files.base import FileType, SourceFile, infer_file_type
from formwork.files.data import DataFile, Route, RouteFile, ServiceFile, StoreFile
from formwork.files.factory import create_file
from formwork.files.view import DEFAULT_VIEW_SOURCE, InsertPosition, ViewFile, ViewNode
from formwork.model.nodes import Element, ImportSpecifier, ImportStyle, to_attribute_value
from formwork.model.prototypes import ComponentPrototype
from formwork.parser.lexer import is_component_name
from formwork.parser.parser import parse_element
from formwork.session.history import FileSnapshot, History, HistoryEntry, MergeKey
from formwork.session.selection import DragSource, DropMethod, NodeRef, SelectSource
from formwork.workspace.config import DEFAULT_DEPENDENCY_FILE, WorkspaceConfig

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=SourceFile)

# ###############
# Public Interface
# ###############

ROUTES_FILENAME = "routes.yaml"
DEFAULT_SERVICE_MODULE = "index"
BASE_DEPENDENCY_TYPE = "baseDependency"

NodeSource = str | ComponentPrototype | Element
ImportPlan = dict[str, list[ImportSpecifier]]
FilesListener = Callable[[list[str]], None]


@dataclass
class Clipboard:
    """A copied subtree together with the imports it needs."""

    element: Element
    imports: ImportPlan = field(default_factory=dict)


class Workspace:
    """In-memory model of one open project.

    Args:
        files: Initial ``{filename: text}`` mapping, loaded without history.
        prototypes: Component catalog, see ``set_component_prototypes``.
        entry: View file opened first.
        config_file: Data file holding the dependency manifest.
        history: History engine; a default one is created when omitted.
        on_files_change: Listener called with the changed filenames after
            every committed operation.
    """

    def __init__(
        self,
        files: Mapping[str, str] | None = None,
        *,
        prototypes: Mapping[str, ComponentPrototype | Mapping[str, Any]] | None = None,
        entry: str | None = None,
        config_file: str = DEFAULT_DEPENDENCY_FILE,
        history: History | None = None,
        on_files_change: FilesListener | None = None,
    ) -> None:
        self._files: dict[str, SourceFile] = {}
        self._prototypes: dict[str, ComponentPrototype] = {}
        self._listener = on_files_change
        self._tx: _Transaction | None = None
        self.history = history or History()
        self.select_source = SelectSource()
        self.drag_source = DragSource()
        self.clipboard: Clipboard | None = None
        self.entry = entry
        self.config_file = config_file
        self.active_file: str | None = None
        self.active_route: str | None = None
        if prototypes:
            self.set_component_prototypes(prototypes)
        if files:
            self.add_files(files)

    @classmethod
    def from_config(
        cls,
        config: WorkspaceConfig,
        files: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> Workspace:
        """Create a workspace set up from a parsed ``.formwork.yaml``."""
        history = History(limit=config.history_limit, coalesce_window=config.coalesce_window)
        return cls(files, entry=config.entry, config_file=config.config_file, history=history, **kwargs)

    def on_files_change(self, filenames: list[str]) -> None:
        """Called once per committed operation with the files whose text or node ids changed."""
        if self._listener is not None:
            self._listener(filenames)

    # ------------------------------------------------------------------
    # File registry
    # ------------------------------------------------------------------

    @property
    def files(self) -> dict[str, SourceFile]:
        return dict(self._files)

    def list_files(self) -> dict[str, str]:
        """Export the project as ``{filename: text}``."""
        return {name: self._files[name].code for name in sorted(self._files)}

    def get_file(self, filename: str) -> SourceFile:
        """Return the file registered as *filename*.

        Raises:
            NotFoundError: If there is no such file.
        """
        try:
            return self._files[filename]
        except KeyError:
            raise NotFoundError(f"No file {filename!r}") from None

    def has_file(self, filename: str) -> bool:
        return filename in self._files

    def add_file(self, filename: str, code: str, file_type: FileType | None = None) -> SourceFile:
        """Add a file, parsing *code* for its kind.

        Raises:
            NameConflictError: If the filename is taken.
            InvalidTargetError: If *file_type* contradicts the filename.
            ParseError: If *code* is invalid.
        """
        with self._transaction(f"add {filename}"):
            return self._add(filename, code, file_type)

    def add_files(self, files: Mapping[str, str]) -> list[SourceFile]:
        """Bulk-load files. All files are added or none; no history entry is recorded."""
        with self._transaction("add files", record=False):
            added = [self._add(filename, code) for filename, code in files.items()]
            if self.active_file is None:
                self.active_file = self.active_view_file
        logger.info("Loaded %d file(s)", len(added))
        return added

    def add_view_file(
        self,
        filename: str,
        code: str = DEFAULT_VIEW_SOURCE,
        *,
        route: str | None = None,
        name: str | None = None,
    ) -> ViewFile:
        """Add a view file, optionally registering a route that shows it."""
        with self._transaction(f"add {filename}"):
            self._add(filename, code, FileType.VIEW)
            if route is not None:
                self._edit_routes(create=True).add_route(Route(path=route, name=name, view=filename))
        return self._typed(filename, ViewFile)

    def add_store_file(self, name: str, state: Mapping[str, Any] | None = None) -> StoreFile:
        """Add the store module ``stores/<name>.yaml``."""
        filename = _store_filename(name)
        with self._transaction(f"add {filename}"):
            self._add(filename, "", FileType.STORE)
            store = self._typed(filename, StoreFile)
            for state_name, init_value in (state or {}).items():
                store.add_state(state_name, init_value)
        return store

    def add_service_file(
        self,
        name: str,
        functions: Mapping[str, Mapping[str, Any]] | None = None,
        base: Mapping[str, Any] | None = None,
    ) -> ServiceFile:
        """Add the service module ``services/<name>.yaml``."""
        filename = _service_filename(name)
        with self._transaction(f"add {filename}"):
            self._add(filename, "", FileType.SERVICE)
            service = self._typed(filename, ServiceFile)
            if base:
                service.update_base_config(base)
            if functions:
                service.add_functions(functions)
        return service

    def remove_file(self, filename: str) -> None:
        """Remove a file.

        Raises:
            NotFoundError: If there is no such file.
        """
        with self._transaction(f"remove {filename}"):
            self.get_file(filename)
            self._touch(filename)
            del self._files[filename]

    def update_file(self, filename: str, code: str) -> SourceFile:
        """Replace a file's text; on ParseError the file keeps its content."""
        with self._transaction(f"update {filename}"):
            file = self._edit(filename, SourceFile)
            file.update(code)
        return file

    def rename_file(self, old: str, new: str) -> SourceFile:
        """Move a file to a new name, keeping its tree and node ids.

        Routes pointing at a renamed view follow it.

        Raises:
            NotFoundError: If *old* does not exist.
            NameConflictError: If *new* is taken.
            InvalidTargetError: If *new* names a different kind of file.
        """
        with self._transaction(f"rename {old}"):
            self._rename_all({old: new})
        return self._files[new]

    def rename_folder(self, old: str, new: str) -> dict[str, str]:
        """Rename every file under folder *old* to the same path under *new*.

        All files are renamed or none. Returns the ``{old: new}`` mapping.

        Raises:
            NotFoundError: If no file lives under *old*.
            NameConflictError: If any target name is taken by a file outside *old*.
            InvalidTargetError: If a move would change a file's kind.
        """
        old_prefix = old.strip("/") + "/"
        new_prefix = new.strip("/") + "/"
        renames = {
            filename: new_prefix + filename[len(old_prefix) :]
            for filename in sorted(self._files)
            if filename.startswith(old_prefix)
        }
        if not renames:
            raise NotFoundError(f"No files under {old!r}")
        with self._transaction(f"rename folder {old}"):
            self._rename_all(renames)
        return renames

    # ------------------------------------------------------------------
    # Active state and derived views
    # ------------------------------------------------------------------

    def set_active_file(self, filename: str) -> None:
        self.get_file(filename)
        self.active_file = filename

    def set_active_route(self, path: str) -> None:
        """Activate a route and the view it shows.

        Raises:
            NotFoundError: If no route has this path.
        """
        routes = self._route_file()
        if routes is None:
            raise NotFoundError(f"No route {path!r}")
        route = routes.get_route(path)
        self.active_route = path
        if route.view is not None and route.view in self._files:
            self.active_file = route.view

    @property
    def active_view_file(self) -> str | None:
        """Name of the view being edited: the active file, the entry or the first view."""
        for candidate in (self.active_file, self.entry):
            if candidate is not None and isinstance(self._files.get(candidate), ViewFile):
                return candidate
        views = self._names_of(FileType.VIEW)
        return views[0] if views else None

    @property
    def active_view_module(self) -> ViewFile | None:
        filename = self.active_view_file
        return None if filename is None else self._typed(filename, ViewFile)

    @property
    def pages(self) -> list[Route]:
        routes = self._route_file()
        return [] if routes is None else routes.list_routes()

    @property
    def biz_comps(self) -> list[str]:
        return list(self._manifest_data().get("bizDependencies", []))

    @property
    def base_comps(self) -> list[str]:
        packages = self._manifest_data().get("packages", {})
        return [
            name
            for name, info in packages.items()
            if isinstance(info, dict) and info.get("type") == BASE_DEPENDENCY_TYPE
        ]

    @property
    def local_comps(self) -> list[str]:
        """Stems of the view files kept in a ``components`` folder."""
        return sorted(
            PurePosixPath(name).stem
            for name in self._names_of(FileType.VIEW)
            if "components" in PurePosixPath(name).parent.parts
        )

    # ------------------------------------------------------------------
    # Component prototypes
    # ------------------------------------------------------------------

    @property
    def prototypes(self) -> dict[str, ComponentPrototype]:
        return dict(self._prototypes)

    def set_component_prototypes(self, prototypes: Mapping[str, ComponentPrototype | Mapping[str, Any]]) -> None:
        """Replace the component catalog.

        Values may be prototypes or plain mappings; a mapping without a
        ``name`` takes its key.
        """
        catalog: dict[str, ComponentPrototype] = {}
        for name, value in prototypes.items():
            if isinstance(value, ComponentPrototype):
                catalog[name] = value
            else:
                catalog[name] = ComponentPrototype.model_validate({"name": name, **value})
        self._prototypes = catalog
        logger.debug("Registered %d component prototype(s)", len(catalog))

    def get_prototype(self, prototype: str | ComponentPrototype) -> ComponentPrototype:
        """Resolve a component name to its prototype; prototypes pass through.

        Raises:
            UnknownComponentError: If the name is not registered.
        """
        if isinstance(prototype, ComponentPrototype):
            return prototype
        try:
            return self._prototypes[prototype]
        except KeyError:
            raise UnknownComponentError(f"Unknown component {prototype!r}") from None

    # ------------------------------------------------------------------
    # Node operations
    # ------------------------------------------------------------------

    def get_node(self, node_id: str, filename: str | None = None) -> ViewNode:
        """Return a node of *filename*, the active view file by default."""
        return self._view(filename).get_node(node_id)

    def insert_to_node(
        self,
        node_id: str,
        source: NodeSource,
        position: InsertPosition = InsertPosition(),
        *,
        filename: str | None = None,
        validate: bool = False,
    ) -> ViewNode:
        """Insert a component into a node.

        *source* is a registered component name, a prototype or an Element;
        components are built from their prototype and their imports added.
        With *validate* the edited file is re-parsed before the change is kept.
        """
        with self._transaction("insert node"):
            view = self._edit_view(filename)
            element, imports = self._materialize(source)
            self._merge_imports(view, imports, validate)
            return view.insert_child(node_id, element, position, validate=validate)

    def replace_node(
        self, node_id: str, source: NodeSource, *, filename: str | None = None, validate: bool = False
    ) -> ViewNode:
        """Replace a node's subtree with a component, keeping its place."""
        with self._transaction("replace node"):
            view = self._edit_view(filename)
            element, imports = self._materialize(source)
            self._merge_imports(view, imports, validate)
            return view.replace_node(node_id, element, validate=validate)

    def remove_node(self, node_id: str, *, filename: str | None = None, validate: bool = False) -> list[str]:
        with self._transaction("remove node"):
            return self._edit_view(filename).remove_node(node_id, validate=validate)

    def select_node(self, node_id: str, filename: str | None = None) -> NodeRef:
        """Select an existing node."""
        view = self._view(filename)
        view.get_node(node_id)
        return self.select_source.select(view.filename, node_id)

    def remove_selected_node(self, *, validate: bool = False) -> list[str]:
        ref = self._selection()
        return self.remove_node(ref.node_id, filename=ref.filename, validate=validate)

    def insert_to_selected_node(
        self, source: NodeSource, position: InsertPosition = InsertPosition(), *, validate: bool = False
    ) -> ViewNode:
        ref = self._selection()
        return self.insert_to_node(ref.node_id, source, position, filename=ref.filename, validate=validate)

    def clone_selected_node(self) -> ViewNode:
        """Insert a copy of the selected node right after it and select the copy."""
        ref = self._selection()
        with self._transaction("clone node"):
            view = self._edit_view(ref.filename)
            clone = view.insert_after(ref.node_id, view.get_node(ref.node_id).clone_raw_node())
        self.select_source.select(ref.filename, clone.id)
        return clone

    def copy_selected_node(self) -> Clipboard:
        """Put the selected subtree and its imports on the clipboard."""
        ref = self._selection()
        view = self._view(ref.filename)
        element = view.get_node(ref.node_id).clone_raw_node()
        self.clipboard = Clipboard(element, _imports_used(view, element))
        return self.clipboard

    def paste_selected_node(self) -> ViewNode:
        """Insert the clipboard after the selected node, or into it when it is the root.

        Raises:
            NoSelectionError: Without a selection or with an empty clipboard.
        """
        ref = self._selection()
        if self.clipboard is None:
            raise NoSelectionError("The clipboard is empty")
        with self._transaction("paste node"):
            view = self._edit_view(ref.filename)
            self._merge_imports(view, self.clipboard.imports)
            if view.get_node(ref.node_id).parent_id is None:
                return view.insert_child(ref.node_id, self.clipboard.element)
            return view.insert_after(ref.node_id, self.clipboard.element)

    def drop_node(self, *, validate: bool = False) -> ViewNode:
        """Complete the current drag at its drop target.

        A dragged node is moved: within a file it keeps its ids, across files
        it is re-created in the target with fresh ids and the imports it
        needs. A dragged prototype is inserted as a new component. The drag is
        cleared and the dropped node selected.

        Raises:
            NoSelectionError: If no drag is in progress or no target is set.
        """
        drag = self.drag_source
        target = drag.target
        if not drag.active or target is None:
            raise NoSelectionError("No drag in progress")
        with self._transaction("drop node"):
            target_view = self._edit_view(target.ref.filename)
            source = drag.source
            if source is not None and source.filename == target.ref.filename and target.method != DropMethod.REPLACE:
                node = self._move_within(target_view, source.node_id, target.ref.node_id, target.method, validate)
            else:
                if source is not None:
                    source_view = self._edit_view(source.filename)
                    if source == target.ref or _contains(source_view, source.node_id, target.ref):
                        raise InvalidTargetError("Cannot drop a node onto its own subtree")
                    element = source_view.get_node(source.node_id).clone_raw_node()
                    imports = _imports_used(source_view, element)
                    source_view.remove_node(source.node_id, validate=validate)
                else:
                    assert drag.prototype is not None
                    element, imports = self._materialize(drag.prototype)
                self._merge_imports(target_view, imports, validate)
                node = _place(target_view, target.ref.node_id, target.method, element, validate)
        drag.clear()
        self.select_source.select(node.file.filename, node.id)
        return node

    def update_node_attribute(
        self,
        node_id: str,
        name: str,
        value: Any,
        related_imports: Iterable[str] = (),
        *,
        filename: str | None = None,
        validate: bool = False,
    ) -> None:
        """Set or remove (``None``) one attribute.

        *related_imports* names registered components the value refers to;
        their imports are added. Quick repeated edits of the same attribute
        are undone as one step.
        """
        self.update_node_attributes(node_id, {name: value}, related_imports, filename=filename, validate=validate)

    def update_node_attributes(
        self,
        node_id: str,
        attributes: Mapping[str, Any],
        related_imports: Iterable[str] = (),
        *,
        filename: str | None = None,
        validate: bool = False,
    ) -> None:
        view_name = self._view(filename).filename
        merge_key: MergeKey = (view_name, node_id, *sorted(attributes))
        with self._transaction("update attributes", merge_key=merge_key):
            view = self._edit_view(view_name)
            imports: ImportPlan = {}
            for component in related_imports:
                _extend_plan(imports, self._prototype_imports(self.get_prototype(component)))
            view.update_attributes(node_id, attributes, imports, validate=validate)

    def update_selected_node_attributes(
        self, attributes: Mapping[str, Any], related_imports: Iterable[str] = (), *, validate: bool = False
    ) -> None:
        ref = self._selection()
        self.update_node_attributes(ref.node_id, attributes, related_imports, filename=ref.filename, validate=validate)

    def add_import_specifiers(
        self,
        source: str,
        specifiers: Iterable[ImportSpecifier],
        *,
        filename: str | None = None,
        validate: bool = False,
    ) -> None:
        with self._transaction(f"import from {source}"):
            self._edit_view(filename).add_import_specifiers(source, specifiers, validate=validate)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> HistoryEntry:
        """Restore the files of the last entry to their state before it.

        Raises:
            NothingToUndoError: If there is nothing to undo.
        """
        entry = self.history.undo()
        self._apply_snapshots(entry.before)
        logger.debug("Undid history entry %d (%s)", entry.seq, entry.label)
        self._finish(entry.filenames)
        return entry

    def redo(self) -> HistoryEntry:
        """Re-apply the next entry.

        Raises:
            NothingToRedoError: If there is nothing to redo.
        """
        entry = self.history.redo()
        self._apply_snapshots(entry.after)
        logger.debug("Redid history entry %d (%s)", entry.seq, entry.label)
        self._finish(entry.filenames)
        return entry

    # ------------------------------------------------------------------
    # Routes and pages
    # ------------------------------------------------------------------

    def update_route(self, source_path: str, page: Route | Mapping[str, Any]) -> Route:
        """Replace the route at *source_path*; fields missing from *page* are kept."""
        with self._transaction(f"update route {source_path}"):
            routes = self._edit_routes()
            route = _merged_route(routes.get_route(source_path), page)
            routes.update_route(source_path, route)
        if self.active_route == source_path:
            self.active_route = route.path
        return route

    def remove_view_module(self, route_path: str) -> None:
        """Remove a route together with the view file it shows."""
        with self._transaction(f"remove page {route_path}"):
            routes = self._edit_routes()
            route = routes.get_route(route_path)
            routes.remove_route(route_path)
            if route.view is not None and route.view in self._files:
                self._touch(route.view)
                del self._files[route.view]
        if self.active_route == route_path:
            self.active_route = None

    def copy_view_page(self, source_path: str, page: Route | Mapping[str, Any]) -> Route:
        """Duplicate the view of route *source_path* under a new route.

        Without a ``view`` in *page*, the copy is stored next to the original
        under a free ``<stem>_copy`` name.
        """
        with self._transaction(f"copy page {source_path}"):
            routes = self._edit_routes()
            source = routes.get_route(source_path)
            if source.view is None:
                raise InvalidTargetError(f"Route {source_path!r} has no view")
            original = self._typed(source.view, ViewFile)
            route = _merged_route(Route(path=source_path, view=None), page)
            if route.view is None:
                route.view = self._free_copy_name(source.view)
            self._add(route.view, original.code, FileType.VIEW)
            routes.add_route(route)
        return route

    # ------------------------------------------------------------------
    # Store modules
    # ------------------------------------------------------------------

    @property
    def store_modules(self) -> dict[str, StoreFile]:
        return {file.name: file for file in self._files.values() if isinstance(file, StoreFile)}

    def add_store_state(self, store: str, state: str, init_value: Any) -> None:
        """Add a state variable, creating the store module when needed."""
        with self._transaction(f"add state {store}.{state}"):
            self._store(store, create=True).add_state(state, init_value)

    def remove_store_module(self, store: str) -> None:
        with self._transaction(f"remove store {store}"):
            filename = self._store(store).filename
            del self._files[filename]

    def remove_store_variable(self, variable_path: str) -> None:
        """Remove the variable at ``"store.variable"``."""
        store, state = _split_key(variable_path)
        with self._transaction(f"remove state {variable_path}"):
            self._store(store).remove_state(state)

    def update_store_variable(self, variable_path: str, code: Any) -> None:
        """Replace the initial value of ``"store.variable"``."""
        store, state = _split_key(variable_path)
        with self._transaction(f"update state {variable_path}"):
            self._store(store).update_state(state, code)

    # ------------------------------------------------------------------
    # Service modules
    # ------------------------------------------------------------------

    @property
    def service_modules(self) -> dict[str, ServiceFile]:
        return {file.name: file for file in self._files.values() if isinstance(file, ServiceFile)}

    def get_service_function(self, service_key: str) -> dict[str, Any]:
        """Look up ``"module.function"`` (or a bare name in the index module).

        Returns:
            ``{"name", "module_name", "config"}``.
        """
        module, name = _service_key(service_key)
        service = self.service_modules.get(module)
        if service is None:
            raise NotFoundError(f"No service module {module!r}")
        return {"name": name, "module_name": module, "config": service.get_function(name)}

    def list_service_functions(self) -> dict[str, dict[str, Any]]:
        """All functions keyed by service key."""
        functions: dict[str, dict[str, Any]] = {}
        for module, service in sorted(self.service_modules.items()):
            for name, config in service.list_functions().items():
                key = name if module == DEFAULT_SERVICE_MODULE else f"{module}.{name}"
                functions[key] = config
        return functions

    def add_service_function(self, name: str, config: Mapping[str, Any], module: str = DEFAULT_SERVICE_MODULE) -> None:
        self.add_service_functions({name: config}, module)

    def add_service_functions(
        self, configs: Mapping[str, Mapping[str, Any]], module: str = DEFAULT_SERVICE_MODULE
    ) -> None:
        """Add functions to a service module, creating it when needed."""
        with self._transaction(f"add service functions to {module}"):
            self._service(module, create=True).add_functions(configs)

    def update_service_function(self, service_key: str, payload: Mapping[str, Any]) -> None:
        module, name = _service_key(service_key)
        with self._transaction(f"update service function {service_key}"):
            self._service(module).update_function(name, payload)

    def remove_service_function(self, service_key: str) -> None:
        module, name = _service_key(service_key)
        with self._transaction(f"remove service function {service_key}"):
            self._service(module).remove_function(name)

    def update_service_base_config(self, config: Mapping[str, Any], module: str = DEFAULT_SERVICE_MODULE) -> None:
        with self._transaction(f"update service config {module}"):
            self._service(module, create=True).update_base_config(config)

    # ------------------------------------------------------------------
    # Dependency manifest
    # ------------------------------------------------------------------

    def list_dependencies(self) -> dict[str, dict[str, Any]]:
        return dict(self._manifest_data().get("packages", {}))

    def get_dependency(self, name: str) -> dict[str, Any]:
        packages = self.list_dependencies()
        if name not in packages:
            raise NotFoundError(f"No dependency {name!r}")
        return packages[name]

    def add_dependency(self, name: str, version: str, options: Mapping[str, Any] | None = None) -> None:
        """Add a package to the manifest.

        Raises:
            NameConflictError: If the package is already listed.
        """
        with self._transaction(f"add dependency {name}"):
            manifest = self._edit_manifest()
            packages = manifest.get_value("packages", {})
            if name in packages:
                raise NameConflictError(f"Dependency {name!r} already exists")
            packages[name] = {"version": version, **(options or {})}
            manifest.set_value("packages", packages)

    def update_dependency(self, name: str, version: str, options: Mapping[str, Any] | None = None) -> None:
        """Change a package's version and merge *options* into its entry."""
        with self._transaction(f"update dependency {name}"):
            manifest = self._edit_manifest()
            packages = manifest.get_value("packages", {})
            if name not in packages:
                raise NotFoundError(f"No dependency {name!r}")
            packages[name] = {**packages[name], **(options or {}), "version": version}
            manifest.set_value("packages", packages)

    def remove_dependency(self, name: str) -> None:
        with self._transaction(f"remove dependency {name}"):
            manifest = self._edit_manifest()
            packages = manifest.get_value("packages", {})
            if name not in packages:
                raise NotFoundError(f"No dependency {name!r}")
            del packages[name]
            manifest.set_value("packages", packages)

    def add_biz_comp(self, name: str, version: str, options: Mapping[str, Any] | None = None) -> None:
        """Register a business component package, adding or updating its dependency."""
        with self._transaction(f"add business component {name}"):
            manifest = self._edit_manifest()
            packages = manifest.get_value("packages", {})
            packages[name] = {**packages.get(name, {}), **(options or {}), "version": version}
            manifest.set_value("packages", packages)
            biz = manifest.get_value("bizDependencies", [])
            if name not in biz:
                manifest.set_value("bizDependencies", [*biz, name])

    def remove_biz_comp(self, name: str) -> None:
        """Unregister a business component package and drop its dependency."""
        with self._transaction(f"remove business component {name}"):
            manifest = self._edit_manifest()
            biz = manifest.get_value("bizDependencies", [])
            if name not in biz:
                raise NotFoundError(f"No business component {name!r}")
            manifest.set_value("bizDependencies", [item for item in biz if item != name])
            packages = manifest.get_value("packages", {})
            if name in packages:
                del packages[name]
                manifest.set_value("packages", packages)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(
        self,
        label: str,
        merge_key: MergeKey | None = None,
        record: bool = True,
    ) -> Iterator[None]:
        if self._tx is not None:
            yield
            return
        tx = _Transaction(pointers=(self.entry, self.active_file, self.active_route))
        self._tx = tx
        try:
            yield
        except Exception:
            self._tx = None
            self._apply_snapshots(tx.before)
            self.entry, self.active_file, self.active_route = tx.pointers
            logger.warning("Rolled back %r", label)
            raise
        self._tx = None
        changed = [name for name, snapshot in tx.before.items() if self._differs(name, snapshot)]
        if changed and record:
            before = {name: tx.before[name] for name in changed}
            after = {name: self._snapshot(name) for name in changed}
            self.history.record(label, before, after, merge_key)
        logger.debug("Committed %r (%d file(s) changed)", label, len(changed))
        self._finish(changed)

    def _touch(self, filename: str) -> None:
        if self._tx is not None and filename not in self._tx.before:
            self._tx.before[filename] = self._snapshot(filename)

    def _snapshot(self, filename: str) -> FileSnapshot | None:
        file = self._files.get(filename)
        return None if file is None else FileSnapshot.capture(file)

    def _differs(self, filename: str, snapshot: FileSnapshot | None) -> bool:
        file = self._files.get(filename)
        if file is None or snapshot is None:
            return (file is None) != (snapshot is None)
        if file.code != snapshot.code:
            return True
        # Same text, but replaced nodes carry new ids.
        return isinstance(file, ViewFile) and list(file.nodes) != [node.id for node in snapshot.state.root.walk()]

    def _apply_snapshots(self, snapshots: Mapping[str, FileSnapshot | None]) -> None:
        for filename, snapshot in snapshots.items():
            current = self._files.get(filename)
            if snapshot is None:
                self._files.pop(filename, None)
            elif current is not None and current.type == snapshot.type:
                current.restore_state(snapshot.state)
            else:
                self._files[filename] = snapshot.restore(**self._file_options(snapshot.type))

    def _finish(self, changed: list[str]) -> None:
        self._sync_references()
        if changed:
            self.on_files_change(changed)

    def _sync_references(self) -> None:
        self.select_source.prune(self._is_live)
        self.drag_source.prune(self._is_live)
        if self.active_file is not None and self.active_file not in self._files:
            self.active_file = None

    def _is_live(self, ref: NodeRef) -> bool:
        file = self._files.get(ref.filename)
        return isinstance(file, ViewFile) and file.has_node(ref.node_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add(self, filename: str, code: str, file_type: FileType | None = None) -> SourceFile:
        if filename in self._files:
            raise NameConflictError(f"File {filename!r} already exists")
        file = create_file(filename, code, file_type, **self._file_options(infer_file_type(filename)))
        self._touch(filename)
        self._files[filename] = file
        return file

    def _rename_all(self, renames: Mapping[str, str]) -> None:
        for old, new in renames.items():
            file = self.get_file(old)
            if new in self._files and new not in renames:
                raise NameConflictError(f"File {new!r} already exists")
            if infer_file_type(new) != file.type:
                raise InvalidTargetError(f"Renaming {old!r} to {new!r} would change its kind")
        if len(set(renames.values())) != len(renames):
            raise NameConflictError("Rename targets are not unique")
        moved = {}
        for old, new in renames.items():
            self._touch(old)
            self._touch(new)
            moved[new] = self._files.pop(old).renamed(new)
        self._files.update(moved)
        for old, new in renames.items():
            if self.entry == old:
                self.entry = new
            if self.active_file == old:
                self.active_file = new
        view_renames = {old: new for old, new in renames.items() if isinstance(moved[new], ViewFile)}
        routes = self._route_file()
        if view_renames and routes is not None:
            self._touch(routes.filename)
            routes.rewrite_views(view_renames)
        logger.debug("Renamed %d file(s)", len(renames))

    def _file_options(self, file_type: FileType) -> dict[str, Any]:
        if file_type == FileType.VIEW:
            return {"accepts_children": self._accepts_children}
        return {}

    def _accepts_children(self, component: str) -> bool:
        prototype = self._prototypes.get(component)
        return prototype is None or prototype.has_children

    def _typed(self, filename: str, cls: type[_F]) -> _F:
        file = self.get_file(filename)
        if not isinstance(file, cls):
            raise InvalidTargetError(f"{filename!r} is a {file.type.value} file")
        return file

    def _edit(self, filename: str, cls: type[_F]) -> _F:
        file = self._typed(filename, cls)
        self._touch(filename)
        return file

    def _view(self, filename: str | None) -> ViewFile:
        name = filename or self.active_view_file
        if name is None:
            raise NotFoundError("No view file is open")
        return self._typed(name, ViewFile)

    def _edit_view(self, filename: str | None) -> ViewFile:
        view = self._view(filename)
        self._touch(view.filename)
        return view

    def _names_of(self, file_type: FileType) -> list[str]:
        return sorted(name for name, file in self._files.items() if file.type == file_type)

    def _selection(self) -> NodeRef:
        ref = self.select_source.selected
        if ref is None:
            raise NoSelectionError("No node is selected")
        return ref

    def _route_file(self) -> RouteFile | None:
        if isinstance(self._files.get(ROUTES_FILENAME), RouteFile):
            return self._typed(ROUTES_FILENAME, RouteFile)
        names = self._names_of(FileType.ROUTE)
        return self._typed(names[0], RouteFile) if names else None

    def _edit_routes(self, create: bool = False) -> RouteFile:
        routes = self._route_file()
        if routes is not None:
            return self._edit(routes.filename, RouteFile)
        if not create:
            raise NotFoundError("The project has no route table")
        self._add(ROUTES_FILENAME, "")
        return self._typed(ROUTES_FILENAME, RouteFile)

    def _store(self, name: str, create: bool = False) -> StoreFile:
        store = self.store_modules.get(name)
        if store is not None:
            return self._edit(store.filename, StoreFile)
        if not create:
            raise NotFoundError(f"No store module {name!r}")
        filename = _store_filename(name)
        self._add(filename, "", FileType.STORE)
        return self._typed(filename, StoreFile)

    def _service(self, name: str, create: bool = False) -> ServiceFile:
        service = self.service_modules.get(name)
        if service is not None:
            return self._edit(service.filename, ServiceFile)
        if not create:
            raise NotFoundError(f"No service module {name!r}")
        filename = _service_filename(name)
        self._add(filename, "", FileType.SERVICE)
        return self._typed(filename, ServiceFile)

    def _manifest_data(self) -> dict[str, Any]:
        file = self._files.get(self.config_file)
        if not isinstance(file, DataFile):
            return {}
        data = file.data
        return data if isinstance(data, dict) else {}

    def _edit_manifest(self) -> DataFile:
        if self.config_file not in self._files:
            self._add(self.config_file, "{}", FileType.DATA)
        return self._edit(self.config_file, DataFile)

    def _free_copy_name(self, filename: str) -> str:
        path = PurePosixPath(filename)
        candidate = path.with_name(f"{path.stem}_copy{path.suffix}")
        counter = 1
        while str(candidate) in self._files:
            counter += 1
            candidate = path.with_name(f"{path.stem}_copy{counter}{path.suffix}")
        return str(candidate)

    def _materialize(self, source: NodeSource) -> tuple[Element, ImportPlan]:
        if isinstance(source, Element):
            return source, {}
        prototype = self.get_prototype(source)
        plan = self._prototype_imports(prototype)
        for related in prototype.related_imports:
            _extend_plan(plan, self._prototype_imports(self.get_prototype(related)))
        return prototype_to_element(prototype), plan

    def _prototype_imports(self, prototype: ComponentPrototype) -> ImportPlan:
        if prototype.package is None:
            return {}
        return {prototype.package: [_prototype_specifier(prototype)]}

    def _merge_imports(self, view: ViewFile, plan: ImportPlan, validate: bool = False) -> None:
        for source, specifiers in plan.items():
            view.add_import_specifiers(source, specifiers, validate=validate)

    def _move_within(
        self, view: ViewFile, node_id: str, target_id: str, method: DropMethod, validate: bool = False
    ) -> ViewNode:
        if method == DropMethod.CHILD_FIRST:
            return view.move_node(node_id, target_id, InsertPosition.prepend(), validate=validate)
        if method == DropMethod.CHILD_LAST:
            return view.move_node(node_id, target_id, InsertPosition.append(), validate=validate)
        if node_id == target_id:
            raise InvalidTargetError("Cannot drop a node next to itself")
        parent_id = view.get_node(target_id).parent_id
        if parent_id is None:
            raise InvalidTargetError("The root node has no siblings")
        position = InsertPosition.before(target_id) if method == DropMethod.BEFORE else InsertPosition.after(target_id)
        return view.move_node(node_id, parent_id, position, validate=validate)


def prototype_to_element(prototype: ComponentPrototype) -> Element:
    """Build the element a prototype inserts: default props and initial children."""
    if not is_component_name(prototype.name):
        raise InvalidTargetError(f"Prototype name {prototype.name!r} is not a valid component name")
    attributes = {
        name: to_attribute_value(value) for name, value in prototype.default_props.items() if value is not None
    }
    children: list[Element] = []
    if prototype.init_children and prototype.has_children:
        wrapper = parse_element(f"<{prototype.name}>{prototype.init_children}</{prototype.name}>")
        children = wrapper.children
    return Element(component=prototype.name, attributes=attributes, children=children)


# ################
# Implementation
# ################


@dataclass
class _Transaction:
    pointers: tuple[str | None, str | None, str | None]
    before: dict[str, FileSnapshot | None] = field(default_factory=dict)


def _store_filename(name: str) -> str:
    return f"stores/{name}.yaml"


def _service_filename(name: str) -> str:
    return f"services/{name}.yaml"


def _split_key(path: str) -> tuple[str, str]:
    module, sep, name = path.partition(".")
    if not sep or not module or not name:
        raise InvalidTargetError(f"Expected 'module.name', got {path!r}")
    return module, name


def _service_key(key: str) -> tuple[str, str]:
    if "." in key:
        return _split_key(key)
    return DEFAULT_SERVICE_MODULE, key


def _merged_route(route: Route, page: Route | Mapping[str, Any]) -> Route:
    update = page.model_dump(exclude_unset=True) if isinstance(page, Route) else dict(page)
    return Route.model_validate({**route.model_dump(), **update})


def _prototype_specifier(prototype: ComponentPrototype) -> ImportSpecifier:
    local = prototype.name.split(".")[0]
    return ImportSpecifier(local=local, style=prototype.export_type)


def _extend_plan(plan: ImportPlan, extra: ImportPlan) -> None:
    for source, specifiers in extra.items():
        target = plan.setdefault(source, [])
        for spec in specifiers:
            if spec not in target:
                target.append(spec)


def _imports_used(view: ViewFile, element: Element) -> ImportPlan:
    """Imports of *view* that the components of *element* resolve through."""
    import_map = view.import_map
    plan: ImportPlan = {}
    for descendant in element.walk():
        local = descendant.component.split(".")[0]
        binding = import_map.get(local)
        if binding is None:
            continue
        if binding.style == ImportStyle.NAMED and binding.imported != local:
            spec = ImportSpecifier(local=local, imported=binding.imported, style=binding.style)
        else:
            spec = ImportSpecifier(local=local, style=binding.style)
        _extend_plan(plan, {binding.source: [spec]})
    return plan


def _contains(view: ViewFile, node_id: str, ref: NodeRef) -> bool:
    if ref.filename != view.filename:
        return False
    return any(descendant.id == ref.node_id for descendant in view.get_node(node_id).raw_node.walk())


def _place(view: ViewFile, target_id: str, method: DropMethod, element: Element, validate: bool = False) -> ViewNode:
    if method == DropMethod.BEFORE:
        return view.insert_before(target_id, element, validate=validate)
    if method == DropMethod.AFTER:
        return view.insert_after(target_id, element, validate=validate)
    if method == DropMethod.CHILD_FIRST:
        return view.insert_child(target_id, element, InsertPosition.prepend(), validate=validate)
    if method == DropMethod.CHILD_LAST:
        return view.insert_child(target_id, element, InsertPosition.append(), validate=validate)
    return view.replace_node(target_id, element, validate=validate)
