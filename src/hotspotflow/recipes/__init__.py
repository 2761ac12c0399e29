"""Recipe mechanism for named analysis pipelines."""

from hotspotflow.recipes.base import BaseRecipe
from hotspotflow.recipes.hotspot import HotspotRecipe
from hotspotflow.recipes.registry import get_recipe, list_recipes, register_recipe

register_recipe("hotspot", HotspotRecipe)

__all__ = [
    "BaseRecipe",
    "HotspotRecipe",
    "register_recipe",
    "get_recipe",
    "list_recipes",
]
