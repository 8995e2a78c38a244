"""
Tests for context composition.
"""

import pytest

from chowchow import Application, Context, Module, compose_context


class FieldModule(Module):
    def __init__(self, **fields):
        super().__init__()
        self.fields = fields

    def extend_context(self, ctx):
        return self.fields


class SeesEarlierModule(Module):
    """Contributes a field derived from an earlier module's field."""

    def extend_context(self, ctx):
        return {"shout": ctx["x"].upper()}


class BrokenModule(Module):
    def extend_context(self, ctx):
        raise RuntimeError("cannot extend")


class TestContextClass:
    def test_attribute_access(self):
        ctx = Context(name="geoff")
        assert ctx.name == "geoff"
        assert ctx["name"] == "geoff"

    def test_attribute_assignment(self):
        ctx = Context()
        ctx.age = 42
        assert ctx == {"age": 42}

    def test_missing_attribute(self):
        with pytest.raises(AttributeError):
            Context().missing


class TestComposeContext:
    def test_starts_from_base(self):
        ctx = compose_context({"a": 1}, [])
        assert ctx == {"a": 1}
        assert isinstance(ctx, Context)

    def test_does_not_mutate_base(self):
        base = {"a": 1}
        compose_context(base, [lambda ctx: {"b": 2}])
        assert base == {"a": 1}

    def test_none_contribution_is_ignored(self):
        assert compose_context({"a": 1}, [lambda ctx: None]) == {"a": 1}


class TestMakeContext:
    def test_merges_modules_in_order(self):
        app = Application()
        app.use(FieldModule(x="a", y=1)).use(FieldModule(x="b"))

        ctx = app.make_context({"req": "request"})

        assert ctx == {"req": "request", "x": "b", "y": 1}

    def test_later_modules_see_earlier_contributions(self):
        app = Application()
        app.use(FieldModule(x="hello")).use(SeesEarlierModule())

        assert app.make_context({})["shout"] == "HELLO"

    def test_is_repeatable(self):
        app = Application()
        app.use(FieldModule(x="a")).use(FieldModule(y="b"))

        assert app.make_context({"req": 1}) == app.make_context({"req": 1})
        assert app.make_context({"req": 1}) is not app.make_context({"req": 1})

    def test_context_factory_runs_before_modules(self):
        app = Application(context_factory=lambda ctx: {"x": "factory", "z": True})
        app.use(FieldModule(x="module"))

        ctx = app.make_context({})

        assert ctx["x"] == "module"
        assert ctx["z"] is True

    def test_module_errors_propagate(self):
        app = Application()
        app.use(BrokenModule())

        with pytest.raises(RuntimeError, match="cannot extend"):
            app.make_context({})

    def test_base_context_has_env_and_emit(self):
        app = Application(env={"NAME": "Geoff"})

        base = app.base_context(extra=1)

        assert base["env"] == {"NAME": "Geoff"}
        assert base["extra"] == 1
        assert callable(base["emit"])

    def test_base_context_env_is_a_copy(self):
        app = Application(env={"NAME": "Geoff"})

        app.base_context()["env"]["NAME"] = "changed"

        assert app.env["NAME"] == "Geoff"
