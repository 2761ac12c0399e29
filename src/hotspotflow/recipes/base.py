"""Base recipe abstraction."""

from abc import ABC, abstractmethod

from hotspotflow.core.pipeline import Pipeline
from hotspotflow.core.schema import AnalysisConfig
from hotspotflow.core.unit_frame import UnitFrame


class BaseRecipe(ABC):
    """
    Base class for all recipes.

    A recipe turns an analysis configuration into a complete, linear
    pipeline for one kind of study.
    """

    def __init__(self, config: AnalysisConfig) -> None:
        """
        Initialize recipe.

        Args:
            config: Analysis configuration
        """
        self.config = config
        self.name = config.recipe

    @abstractmethod
    def build_pipeline(self) -> Pipeline:
        """
        Build the transformation pipeline.

        Returns:
            Pipeline with all transformation steps
        """

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """
        Run the recipe on a unit collection.

        Args:
            unit_frame: Input UnitFrame

        Returns:
            Annotated UnitFrame
        """
        pipeline = self.build_pipeline()
        return pipeline.run(unit_frame)

    def __repr__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}(name={self.name})"
