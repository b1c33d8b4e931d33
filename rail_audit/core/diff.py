"""
Diff engine.

Compares the prior and new images of a mutated row and keeps only what an
audit trail needs: the non-null columns of an inserted or deleted row, and the
columns whose value actually changed on update.
"""

import logging
from typing import Any, Optional, Sequence, Union

from ..types import ChangeSet, ColumnChange, Operation, RowImage

logger = logging.getLogger(__name__)


def values_differ(old_value: Any, new_value: Any) -> bool:
    """
    Null-aware inequality.

    Null equals null and differs from every non-null value; two non-null
    values differ when they compare unequal.
    """
    if old_value is None or new_value is None:
        return (old_value is None) != (new_value is None)
    return old_value != new_value


def filter_image(
    image: Optional[RowImage], columns: Sequence[str]
) -> Optional[dict[str, Any]]:
    """Restrict ``image`` to ``columns``; columns missing from the image are null."""
    if image is None:
        return None
    return {column: image.get(column) for column in columns}


def diff(
    operation: Union[Operation, str],
    eligible_columns: Sequence[str],
    prior_image: Optional[RowImage] = None,
    new_image: Optional[RowImage] = None,
) -> ChangeSet:
    """
    Compute the change set of one mutation.

    Args:
        operation: Kind of mutation
        eligible_columns: Columns subject to auditing, in output order
        prior_image: Row before the mutation (required for UPDATE and DELETE)
        new_image: Row after the mutation (required for INSERT and UPDATE)

    Returns:
        ChangeSet with per-column changes and the filtered images
    """
    operation = Operation.coerce(operation)
    _check_images(operation, prior_image, new_image)

    if operation is Operation.INSERT:
        old_filtered = None
        new_filtered = filter_image(new_image, eligible_columns)
        changes = [
            ColumnChange(column=column, new_value=value)
            for column, value in new_filtered.items()
            if value is not None
        ]
    elif operation is Operation.DELETE:
        old_filtered = filter_image(prior_image, eligible_columns)
        new_filtered = None
        changes = [
            ColumnChange(column=column, old_value=value)
            for column, value in old_filtered.items()
            if value is not None
        ]
    else:
        old_filtered = filter_image(prior_image, eligible_columns)
        new_filtered = filter_image(new_image, eligible_columns)
        changes = [
            ColumnChange(
                column=column,
                old_value=old_filtered[column],
                new_value=new_filtered[column],
            )
            for column in eligible_columns
            if values_differ(old_filtered[column], new_filtered[column])
        ]

    logger.debug(
        "%s diff: %s of %s eligible column(s) changed",
        operation.value,
        len(changes),
        len(eligible_columns),
    )
    return ChangeSet(
        operation=operation,
        changes=tuple(changes),
        old_image=old_filtered,
        new_image=new_filtered,
    )


def _check_images(
    operation: Operation,
    prior_image: Optional[RowImage],
    new_image: Optional[RowImage],
) -> None:
    if operation in (Operation.UPDATE, Operation.DELETE) and prior_image is None:
        raise ValueError(f"{operation.value} requires a prior row image")
    if operation in (Operation.INSERT, Operation.UPDATE) and new_image is None:
        raise ValueError(f"{operation.value} requires a new row image")


__all__ = ["diff", "filter_image", "values_differ"]
