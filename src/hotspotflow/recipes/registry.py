"""Recipe registry for discovery and instantiation."""

from typing import Any

from hotspotflow.core.schema import AnalysisConfig
from hotspotflow.core.utils import get_logger
from hotspotflow.recipes.base import BaseRecipe

logger = get_logger(__name__)

# Global recipe registry
_RECIPE_REGISTRY: dict[str, type[BaseRecipe]] = {}


def register_recipe(recipe_name: str, recipe_class: type[BaseRecipe]) -> None:
    """
    Register a recipe under a name.

    Args:
        recipe_name: Name used in configuration files
        recipe_class: Recipe class to register
    """
    _RECIPE_REGISTRY[recipe_name] = recipe_class
    logger.debug(f"Registered recipe '{recipe_name}'")


def get_recipe(config: AnalysisConfig, **kwargs: Any) -> BaseRecipe:
    """
    Get a recipe instance for a configuration.

    Args:
        config: Analysis configuration; ``config.recipe`` selects the recipe
        **kwargs: Extra keyword arguments for the recipe constructor

    Returns:
        Recipe instance

    Raises:
        ValueError: If the recipe is not registered
    """
    if config.recipe not in _RECIPE_REGISTRY:
        raise ValueError(
            f"Recipe '{config.recipe}' not found. "
            f"Available recipes: {list(_RECIPE_REGISTRY.keys())}"
        )

    recipe_class = _RECIPE_REGISTRY[config.recipe]
    logger.info(f"Creating recipe instance: {config.recipe} for dataset {config.dataset_name}")
    return recipe_class(config, **kwargs)


def list_recipes() -> list[str]:
    """
    List registered recipe names.

    Returns:
        Sorted recipe names
    """
    return sorted(_RECIPE_REGISTRY)
