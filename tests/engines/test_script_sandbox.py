"""Unit tests for engines.script.sandbox."""

import warnings

import pytest

from shapescript.engines.script.sandbox import build_restricted_globals, compile_script


class TestCompileScript:
    def test_compile_simple(self) -> None:
        code = compile_script("x = 1")
        assert code is not None

    def test_compile_list_comp(self) -> None:
        code = compile_script("result = [x * 2 for x in [1, 2, 3]]")
        assert code is not None

    def test_compile_syntax_error(self) -> None:
        with pytest.raises(SyntaxError):
            compile_script("def f(  ")

    def test_private_attribute_rejected(self) -> None:
        with pytest.raises(SyntaxError):
            compile_script("x = ().__class__")

    def test_print_warning_dropped(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            compile_script("def f():\n    print('hi')\n")
        assert not [w for w in caught if "printed" in str(w.message)]


class TestBuildRestrictedGlobals:
    def test_includes_builtins_and_guards(self) -> None:
        g = build_restricted_globals({})
        assert "__builtins__" in g
        assert "_getattr_" in g
        assert "_getiter_" in g
        assert "_getitem_" in g
        assert "_write_" in g
        assert "_inplacevar_" in g

    def test_merges_context(self) -> None:
        g = build_restricted_globals({"log": "log_obj", "args": {"a": 1}})
        assert g["log"] == "log_obj"
        assert g["args"] == {"a": 1}

    def test_open_not_available(self) -> None:
        builtins = build_restricted_globals({})["__builtins__"]
        assert "open" not in builtins
        assert "eval" not in builtins
        assert "sum" in builtins
        assert "enumerate" in builtins

    def test_import_only_through_hook(self) -> None:
        assert "__import__" not in build_restricted_globals({})["__builtins__"]

        def hook(*args: object, **kwargs: object) -> None:
            return None

        g = build_restricted_globals({}, import_hook=hook)
        assert g["__builtins__"]["__import__"] is hook

    def test_exec_in_globals(self) -> None:
        g = build_restricted_globals({})
        exec(compile_script("total = 0\nfor i in range(4):\n    total += i\n"), g)
        assert g["total"] == 6
