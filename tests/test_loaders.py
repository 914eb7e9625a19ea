"""
Tests for the loader registry.
"""

import pytest

from cmdhandler.loaders import ArgumentStyle, LoaderDescriptor, LoaderRegistry


class TestLoaderDescriptor:
    """Tests for LoaderDescriptor."""

    def test_from_command_splits_multi_word_commands(self):
        """Test that 'go run' becomes two invocation tokens."""
        descriptor = LoaderDescriptor.from_command("go", "go run", ArgumentStyle.GO)

        assert descriptor.invocation_tokens == ("go", "run")
        assert descriptor.executable == "go"

    def test_single_token_command(self):
        """Test a plain interpreter loader."""
        descriptor = LoaderDescriptor.from_command("node", "node", ArgumentStyle.GO)

        assert descriptor.invocation_tokens == ("node",)

    def test_empty_command_rejected(self):
        """Test that a loader must name an executable."""
        with pytest.raises(ValueError):
            LoaderDescriptor.from_command("broken", "   ", ArgumentStyle.PYTHON)

    def test_empty_id_rejected(self):
        """Test that a loader must have an id."""
        with pytest.raises(ValueError):
            LoaderDescriptor("", ("python",), ArgumentStyle.PYTHON)

    def test_descriptor_is_immutable(self):
        """Test that descriptors cannot be modified after construction."""
        descriptor = LoaderDescriptor("python", ("python",), ArgumentStyle.PYTHON)

        with pytest.raises(AttributeError):
            descriptor.id = "other"  # type: ignore[misc]


class TestLoaderRegistry:
    """Tests for LoaderRegistry lookups."""

    def test_default_registry_entries(self):
        """Test the stock loaders and their argument styles."""
        registry = LoaderRegistry.default()

        assert registry.ids == ["go", "node", "python", "python3"]
        assert registry.resolve("python").argument_style is ArgumentStyle.PYTHON
        assert registry.resolve("python3").argument_style is ArgumentStyle.PYTHON
        assert registry.resolve("go").argument_style is ArgumentStyle.GO
        assert registry.resolve("go").invocation_tokens == ("go", "run")

    def test_resolve_unknown_loader_returns_none(self):
        """Test that unsupported loaders are not guessed."""
        registry = LoaderRegistry.default()

        assert registry.resolve("ruby") is None
        assert registry.resolve("Python") is None
        assert registry.resolve("") is None
        assert registry.resolve(None) is None

    def test_duplicate_ids_rejected(self):
        """Test that a loader id can only be registered once."""
        descriptor = LoaderDescriptor("python", ("python",), ArgumentStyle.PYTHON)

        with pytest.raises(ValueError, match="Duplicate"):
            LoaderRegistry([descriptor, descriptor])

    def test_membership_and_iteration(self):
        """Test container protocol helpers."""
        registry = LoaderRegistry.default()

        assert "node" in registry
        assert "perl" not in registry
        assert len(registry) == 4
        assert [d.id for d in registry] == registry.ids
