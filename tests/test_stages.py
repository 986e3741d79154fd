from __future__ import annotations

from esmigrate.config import MigrationConfig
from esmigrate.graph import DependencyGraph, SymbolTable
from esmigrate.models import (
    DIAG_CLASS_MISMATCH,
    DIAG_EXTRA_PARENT_CALL,
    DIAG_PARENT_CONFLICT,
    DIAG_ROOT_MISSING,
    SourceUnit,
)
from esmigrate.stages import (
    StageContext,
    export_properties,
    extract_dependencies,
    find_closing_paren,
    link_inheritance,
    merge_capabilities,
    rewrite_parent_calls,
    rewrite_root_declaration,
    split_arguments,
    tag_constructors,
    tag_methods,
)


def _context(path: str = "models/Arrow2.js", symbols: SymbolTable | None = None, **config) -> StageContext:
    return StageContext(
        unit=SourceUnit(path=path, text=""),
        config=MigrationConfig(**config),
        symbols=symbols if symbols is not None else SymbolTable(),
        dependencies=DependencyGraph(),
    )


ROOT_SAMPLE = """var ROS3D = ROS3D || {
  REVISION : '0.18.0'
};

ROS3D.MARKER_ARROW = 0;
"""


def test_root_declaration_becomes_exported_revision():
    context = _context(path="Ros3D.js")
    result = rewrite_root_declaration(ROOT_SAMPLE, context)

    assert result.startswith("export const REVISION = '0.18.0';\n")
    assert "ROS3D.MARKER_ARROW = 0;" in result
    assert context.diagnostics == []


def test_root_declaration_only_applies_to_root_unit():
    context = _context(path="Other.js")
    assert rewrite_root_declaration(ROOT_SAMPLE, context) == ROOT_SAMPLE


def test_root_declaration_missing_is_reported():
    context = _context(path="Ros3D.js")
    text = "ROS3D.MARKER_ARROW = 0;\n"

    assert rewrite_root_declaration(text, context) == text
    assert [d.kind for d in context.diagnostics] == [DIAG_ROOT_MISSING]

    migrated = _context(path="Ros3D.js")
    rewrite_root_declaration("export const REVISION = '0.18.0';\n", migrated)
    assert migrated.diagnostics == []


def test_dependencies_skip_assignment_targets():
    context = _context()
    text = (
        "ROS3D.MARKER_ARROW = 0;\n"
        "ROS3D.Arrow2.prototype.dispose = function() {\n"
        "  var loader = options.loader || ROS3D.COLLADA_LOADER_2;\n"
        "  if (ROS3D.MARKER_CUBE === type) {\n"
        "    ROS3D.counter += 1;\n"
        "  }\n"
        "  return ROS3D.findClosestPoint(axisRay, mpRay);\n"
        "};\n"
    )
    result = extract_dependencies(text, context)

    assert context.dependencies.dependencies_of("models/Arrow2.js") == [
        "COLLADA_LOADER_2",
        "MARKER_CUBE",
        "findClosestPoint",
    ]
    assert "ROS3D.MARKER_ARROW = 0;" in result
    assert "ROS3D.Arrow2.prototype.dispose = function" in result
    assert "options.loader || COLLADA_LOADER_2;" in result
    assert "if (MARKER_CUBE === type)" in result
    assert "ROS3D.counter += 1;" in result
    assert "return findClosestPoint(axisRay, mpRay);" in result


def test_dependencies_not_recorded_when_not_recording():
    context = _context()
    context.recording = False
    result = extract_dependencies("return ROS3D.findClosestPoint(a, b);\n", context)

    assert result == "return findClosestPoint(a, b);\n"
    assert context.dependencies.dependencies_of("models/Arrow2.js") == []


def test_template_link_is_recorded_and_removed():
    context = _context()
    text = "};\nROS3D.Arrow2.prototype.__proto__ = THREE.ArrowHelper.prototype;\n\nnext();\n"
    result = link_inheritance(text, context)

    assert result == "};\n\nnext();\n"
    assert context.symbols.parent_of("Arrow2") == "THREE.ArrowHelper"
    assert context.symbols.is_class("Arrow2")


def test_template_link_strips_namespace_from_parent():
    context = _context()
    link_inheritance("ROS3D.Grid.prototype.__proto__ = ROS3D.Base.prototype;\n", context)
    assert context.symbols.parent_of("Grid") == "Base"


def test_second_parent_is_ignored_and_reported():
    symbols = SymbolTable()
    symbols.link("Arrow2", "THREE.ArrowHelper")
    context = _context(symbols=symbols)
    result = link_inheritance("ROS3D.Arrow2.prototype.__proto__ = THREE.Object3D.prototype;\n", context)

    assert result == ""
    assert symbols.parent_of("Arrow2") == "THREE.ArrowHelper"
    assert [d.kind for d in context.diagnostics] == [DIAG_PARENT_CONFLICT]
    assert context.diagnostics[0].details["ignored"] == "THREE.Object3D"


def test_capability_merge_is_recorded_and_removed():
    context = _context(path="interactivemarkers/InteractiveMarker.js")
    text = "x();\nObject.assign(InteractiveMarker.prototype, THREE.EventDispatcher.prototype);\n"
    result = merge_capabilities(text, context)

    assert result == "x();\n"
    assert context.symbols.merges_of("InteractiveMarker") == ["THREE.EventDispatcher"]
    assert context.symbols.parent_of("InteractiveMarker") is None


def test_capability_merge_ignores_this_receiver():
    context = _context()
    text = "  Object.assign(this.prototype, THREE.EventDispatcher.prototype);\n"
    assert merge_capabilities(text, context) == text
    assert len(context.symbols) == 0


def test_methods_become_bare_heads():
    context = _context()
    text = (
        "ROS3D.Arrow2.prototype.dispose = function() {\n};\n"
        "ROS3D.Arrow2.prototype.setColor = function setColor(hex) {\n};\n"
    )
    result = tag_methods(text, context)

    assert result == "dispose() {\n};\nsetColor(hex) {\n};\n"
    assert context.symbols.is_class("Arrow2")


def test_methods_skip_template_link():
    context = _context()
    text = "ROS3D.Arrow2.prototype.__proto__ = function() {};\n"
    assert tag_methods(text, context) == text
    assert not context.symbols.is_class("Arrow2")


def test_constructor_tagged_only_for_classes():
    symbols = SymbolTable()
    symbols.mark_class("Arrow2")
    context = _context(symbols=symbols)
    text = "ROS3D.Arrow2 = function(options) {\n};\nROS3D.helper = function(x) {\n};\n"
    result = tag_constructors(text, context)

    assert result == "constructor(options) {\n};\nROS3D.helper = function(x) {\n};\n"
    assert context.diagnostics == []


def test_constructor_class_mismatch_is_reported():
    symbols = SymbolTable()
    symbols.mark_class("Marker")
    context = _context(path="Helpers.js", symbols=symbols)
    result = tag_constructors("ROS3D.Marker = function() {};\n", context)

    assert result == "constructor() {};\n"
    assert len(context.diagnostics) == 1
    diagnostic = context.diagnostics[0]
    assert diagnostic.kind == DIAG_CLASS_MISMATCH
    assert diagnostic.unit == "Helpers.js"
    assert diagnostic.details == {"symbol": "Marker", "symbol_table": True, "file_name": False}


def test_parent_constructor_call_becomes_super():
    symbols = SymbolTable()
    symbols.link("Arrow2", "THREE.ArrowHelper")
    context = _context(symbols=symbols)
    text = "constructor(options) {\n  THREE.ArrowHelper.call(this, direction, origin, length, 0xff0000);\n};\n"
    result = rewrite_parent_calls(text, context)

    assert result == "constructor(options) {\n  super(direction, origin, length, 0xff0000);\n};\n"
    assert context.diagnostics == []


def test_parent_call_keeps_nested_and_multiline_arguments():
    symbols = SymbolTable()
    symbols.link("Arrow2", "Base")
    context = _context(symbols=symbols)
    text = '  Base.call(that, make(a, b), "x, y", {\n    c: 1\n  });\n'
    result = rewrite_parent_calls(text, context)

    assert result == '  super(make(a, b), "x, y", {\n    c: 1\n  });\n'


def test_parent_method_call_becomes_super_method():
    symbols = SymbolTable()
    symbols.link("Arrow2", "THREE.Object3D")
    context = _context(symbols=symbols)
    text = "  THREE.Object3D.prototype.updateMatrixWorld.call(that, force);\n"

    assert rewrite_parent_calls(text, context) == "  super.updateMatrixWorld(force);\n"


def test_own_template_method_call_becomes_super_method():
    symbols = SymbolTable()
    symbols.link("InteractiveMarkerControl", "THREE.Object3D")
    context = _context("interactivemarkers/InteractiveMarkerControl.js", symbols)
    text = "  InteractiveMarkerControl.prototype.updateMatrixWorld.call(that, force);\n"

    assert rewrite_parent_calls(text, context) == "  super.updateMatrixWorld(force);\n"
    assert context.diagnostics == []


def test_merge_source_call_is_removed_without_parent():
    symbols = SymbolTable()
    symbols.merge("MouseHandler", "THREE.EventDispatcher")
    context = _context("MouseHandler.js", symbols)
    text = "  THREE.EventDispatcher.call(this);\n  this.renderer = options.renderer;\n"

    assert rewrite_parent_calls(text, context) == "  this.renderer = options.renderer;\n"
    assert context.diagnostics[0].details == {
        "call": "THREE.EventDispatcher.call(this);",
        "parent": None,
    }


def test_foreign_parent_call_is_removed():
    symbols = SymbolTable()
    symbols.link("Arrow2", "THREE.Object3D")
    context = _context(symbols=symbols)
    text = "  THREE.Object3D.call(this);\n  THREE.EventDispatcher.call(this);\n  var that = this;\n"
    result = rewrite_parent_calls(text, context)

    assert result == "  super();\n  var that = this;\n"
    assert [d.kind for d in context.diagnostics] == [DIAG_EXTRA_PARENT_CALL]
    assert context.diagnostics[0].details["call"] == "THREE.EventDispatcher.call(this);"


def test_parent_call_without_recorded_parent_is_removed():
    context = _context()
    result = rewrite_parent_calls("a();\n  Base.call(this, a, b);\nb();\n", context)

    assert result == "a();\nb();\n"
    assert context.diagnostics[0].details["parent"] is None


def test_export_properties():
    context = _context(path="Ros3D.js")
    text = "ROS3D.MARKER_ARROW = 0;\n  ROS3D.nested = 1;\nROS3D.helper = function() {};\n"
    result = export_properties(text, context)

    assert result == "export const MARKER_ARROW = 0;\n  ROS3D.nested = 1;\nexport const helper = function() {};\n"


def test_custom_namespace():
    context = _context(namespace="NS")
    result = tag_methods("NS.Arrow2.prototype.dispose = function() {};\n", context)
    assert result == "dispose() {};\n"


def test_find_closing_paren_skips_strings_and_comments():
    text = 'f(a, ")", /* ) */ g(b)) + 1'
    assert find_closing_paren(text, 1) == text.index(") + 1")
    assert find_closing_paren("f(a, b", 1) is None


def test_split_arguments():
    assert split_arguments("this") == ["this"]
    assert split_arguments("this, a, [b, c], 'd,e'") == ["this", "a", "[b, c]", "'d,e'"]
    assert split_arguments("") == []
