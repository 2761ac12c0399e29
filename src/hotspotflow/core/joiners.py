"""Join strategies for attaching tabular attributes to spatial units."""

import polars as pl

from hotspotflow.core.errors import JoinError
from hotspotflow.core.schema import FeatureProvenance
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.utils import get_logger, is_numeric_col

logger = get_logger(__name__)

_ROW_INDEX = "_unit_order"


class AttributeJoin:
    """
    Key-based join of a table onto a unit collection.

    Units keep their collection order. Units without a matching key receive
    nulls for the added attributes unless the join is strict.
    """

    def __init__(
        self,
        key_col: str | None = None,
        table_key_col: str | None = None,
        strict: bool = False,
        columns: list[str] | None = None,
    ) -> None:
        """
        Initialize attribute join.

        Args:
            key_col: Unit column to match on (defaults to the schema id_col)
            table_key_col: Table column to match on (defaults to *key_col*)
            strict: Raise JoinError when any unit has no matching row
            columns: Table columns to bring across (default: all but the key)
        """
        self.key_col = key_col
        self.table_key_col = table_key_col
        self.strict = strict
        self.columns = columns

    def join(self, unit_frame: UnitFrame, table: pl.DataFrame) -> UnitFrame:
        """
        Perform the join.

        Args:
            unit_frame: Spatial units
            table: Attribute table

        Returns:
            New UnitFrame with the table's attributes appended

        Raises:
            JoinError: On duplicate table keys or, in strict mode, unmatched units
        """
        key_col = self.key_col or unit_frame.schema.id_col
        table_key = self.table_key_col or key_col

        if table_key not in table.columns:
            raise JoinError(f"Key column '{table_key}' not found in attribute table")
        if key_col not in unit_frame.columns():
            raise JoinError(f"Key column '{key_col}' not found in dataset")

        columns = self.columns or [c for c in table.columns if c != table_key]
        missing_cols = [c for c in columns if c not in table.columns]
        if missing_cols:
            raise JoinError(f"Columns not found in attribute table: {missing_cols}")

        right = table.select([pl.col(table_key).cast(pl.Utf8).alias("_join_key"), *columns])

        dupes = right.filter(pl.col("_join_key").is_duplicated()).get_column("_join_key")
        if len(dupes) > 0:
            keys = sorted(set(dupes.to_list()), key=str)
            raise JoinError(f"Duplicate keys in attribute table: {keys[:5]}", keys=keys)

        existing = set(unit_frame.columns())
        renames = {c: f"{c}_right" for c in columns if c in existing}
        if renames:
            logger.warning(f"Renaming colliding join columns: {renames}")
            right = right.rename(renames)

        left = unit_frame.lazy_frame.with_row_index(_ROW_INDEX).with_columns(
            pl.col(key_col).cast(pl.Utf8).alias("_join_key")
        )
        right_lf = right.lazy().with_columns(pl.lit(True).alias("_matched"))
        joined = left.join(right_lf, on="_join_key", how="left").sort(_ROW_INDEX)

        unmatched = (
            joined.filter(pl.col("_matched").is_null())
            .select(pl.col(key_col).cast(pl.Utf8))
            .collect()
            .get_column(key_col)
            .to_list()
        )
        if unmatched:
            message = f"{len(unmatched)} unit(s) have no matching row in the attribute table"
            if self.strict:
                raise JoinError(f"{message}: {unmatched[:5]}", keys=unmatched)
            logger.warning(f"{message}; their joined attributes are null")

        lf = joined.drop([_ROW_INDEX, "_join_key", "_matched"])
        result = unit_frame.with_lazy_frame(lf)

        added = [renames.get(c, c) for c in columns]
        for source_col, name in zip(columns, added):
            provenance = FeatureProvenance(
                produced_by="AttributeJoin",
                inputs=[key_col],
                tags={"join"},
                description=f"Joined from attribute table on {key_col} = {table_key}",
            )
            result = result.register_feature(
                name,
                {"source_step": "AttributeJoin", "key_col": key_col},
                provenance=provenance,
                numeric=is_numeric_col(table.schema[source_col]),
            )

        logger.info(
            f"Joined {len(added)} attribute(s) onto {unit_frame.metadata.dataset_name} "
            f"({len(unmatched)} unmatched)"
        )
        return result

    def __repr__(self) -> str:
        """String representation."""
        return f"AttributeJoin(key={self.key_col}, strict={self.strict})"
