"""Tests for recipe registry."""

import pytest

from hotspotflow.core.pipeline import Pipeline
from hotspotflow.core.schema import AnalysisConfig
from hotspotflow.recipes import HotspotRecipe
from hotspotflow.recipes.base import BaseRecipe
from hotspotflow.recipes.registry import get_recipe, list_recipes, register_recipe


class DummyRecipe(BaseRecipe):
    """Dummy recipe for testing."""

    def build_pipeline(self) -> Pipeline:
        return Pipeline([])


def _config(recipe: str) -> AnalysisConfig:
    return AnalysisConfig(
        dataset_name="test",
        recipe=recipe,
        boundaries={"path": "b.geojson", "id_col": "code"},
        hotspot={"value_col": "rate"},
    )


def test_register_and_get_recipe() -> None:
    """Test registering and retrieving a recipe."""
    register_recipe("test_recipe", DummyRecipe)

    recipe = get_recipe(_config("test_recipe"))

    assert isinstance(recipe, DummyRecipe)
    assert recipe.name == "test_recipe"


def test_builtin_hotspot_recipe() -> None:
    """Test that the hotspot recipe is registered on import."""
    assert "hotspot" in list_recipes()
    assert isinstance(get_recipe(_config("hotspot")), HotspotRecipe)


def test_get_nonexistent_recipe() -> None:
    """Test getting a recipe that doesn't exist."""
    with pytest.raises(ValueError, match="not found"):
        get_recipe(_config("nonexistent"))


def test_list_recipes_sorted() -> None:
    """Test listing recipes."""
    register_recipe("zz_recipe", DummyRecipe)
    register_recipe("aa_recipe", DummyRecipe)

    recipes = list_recipes()

    assert recipes == sorted(recipes)
    assert "aa_recipe" in recipes
    assert "zz_recipe" in recipes
