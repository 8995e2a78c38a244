"""
Tests for the Module base class and the module registry.
"""

import gc

import pytest

from chowchow import Application, Module, ModuleMetadata, RegistrationError, module


@module(name="Database", description="Connection pool", version="2.1.0")
class DatabaseModule(Module):
    pass


class PlainModule(Module):
    pass


class TestModuleClass:
    """Tests for Module base class."""

    def test_module_metadata(self):
        mod = DatabaseModule()
        assert mod.metadata.name == "Database"
        assert mod.metadata.description == "Connection pool"
        assert mod.metadata.version == "2.1.0"

    def test_metadata_defaults_to_class_name(self):
        assert PlainModule().metadata == ModuleMetadata(name="PlainModule")

    def test_subclass_does_not_inherit_metadata(self):
        class ReplicaModule(DatabaseModule):
            pass

        assert ReplicaModule().metadata == ModuleMetadata(name="ReplicaModule")
        assert DatabaseModule().metadata.name == "Database"

    def test_undecorated_subclass_is_found_by_its_own_name(self):
        class ReplicaModule(DatabaseModule):
            pass

        app = Application().use(ReplicaModule())
        assert app.has("ReplicaModule")
        assert not app.has("Database")

    def test_app_initially_none(self):
        assert DatabaseModule().app is None

    def test_default_hooks_do_nothing(self):
        mod = PlainModule()
        assert mod.check_environment() is None
        assert mod.setup_module() is None
        assert mod.clear_module() is None
        assert mod.extend_server(object()) is None
        assert mod.extend_context({}) == {}

    def test_app_reference_is_not_owning(self):
        mod = PlainModule()
        app = Application()
        app.use(mod)
        assert mod.app is app

        del app
        gc.collect()

        assert mod.app is None


class TestRegistry:
    """Tests for use, has and get_module."""

    def test_use_returns_app_for_chaining(self):
        app = Application()
        first, second = DatabaseModule(), PlainModule()

        assert app.use(first).use(second) is app
        assert app.modules == [first, second]

    def test_modules_is_a_copy(self):
        app = Application()
        app.use(PlainModule())

        app.modules.clear()

        assert len(app.modules) == 1

    def test_get_module_by_type(self):
        app = Application()
        db = DatabaseModule()
        app.use(PlainModule()).use(db)

        assert app.get_module(DatabaseModule) is db
        assert app.has(DatabaseModule) is True

    def test_get_module_returns_first_match(self):
        app = Application()
        first, second = PlainModule(), PlainModule()
        app.use(first).use(second)

        assert app.get_module(PlainModule) is first

    def test_get_module_by_tag(self):
        app = Application()
        db = DatabaseModule()
        app.use(db, tag="primary-db")

        assert app.get_module("primary-db") is db
        assert app.has("primary-db")

    def test_get_module_by_name(self):
        app = Application()
        db = DatabaseModule()
        app.use(db)

        assert app.get_module("Database") is db

    def test_missing_module(self):
        app = Application()
        app.use(PlainModule())

        assert app.get_module(DatabaseModule) is None
        assert app.has("nope") is False

    def test_rejects_non_modules(self):
        with pytest.raises(RegistrationError):
            Application().use(object())  # type: ignore[arg-type]

    def test_rejects_module_owned_by_another_app(self):
        mod = PlainModule()
        first = Application()
        first.use(mod)

        with pytest.raises(RegistrationError, match="already registered"):
            Application().use(mod)

    def test_rejects_duplicate_tag(self):
        app = Application()
        app.use(PlainModule(), tag="x")

        with pytest.raises(RegistrationError, match="Module tag 'x'"):
            app.use(PlainModule(), tag="x")
