"""Compile a name-keyed specification into its id-keyed form."""

import logging
from enum import Enum
from typing import TypeVar

from datatransform.core.columns import ColumnIndex, unquote
from datatransform.core.exceptions import InvalidSpecError, UnsupportedMethodError
from datatransform.models.transform_spec import (
    BinMethod,
    BinSpec,
    DummycodeSpec,
    ImputeMethod,
    ImputeSpec,
    NameSpec,
    RecodeSpec,
    ScaleMethod,
    ScaleSpec,
    TransformMethod,
    TransformSpec,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

# Recognized but not implemented.
_UNIMPLEMENTED_METHODS = {
    "bin": {"equi-height"},
}


def compile_spec(name_spec: NameSpec, columns: ColumnIndex) -> TransformSpec:
    """Resolve column names to ids and validate every entry.

    Args:
        name_spec: Name-keyed specification as written by the user
        columns: Column index of the input

    Returns:
        Compiled, id-keyed TransformSpec

    Raises:
        UnknownColumnError: If an entry names a column missing from the header
        UnsupportedMethodError: If a method is unknown or not implemented
        InvalidSpecError: If entries are incomplete or conflict with each other
    """
    impute = tuple(
        ImputeSpec(
            id=columns.id_of(entry.name),
            method=_parse_method(entry.method, ImputeMethod, "impute", entry.name),
            value=_constant_value(entry.method, entry.value, entry.name),
        )
        for entry in name_spec.impute
    )
    recode = tuple(RecodeSpec(id=columns.id_of(name)) for name in name_spec.recode)
    bins = tuple(
        BinSpec(
            id=columns.id_of(entry.name),
            method=_parse_method(entry.method, BinMethod, "bin", entry.name),
            num_bins=_num_bins(entry.num_bins, entry.name),
        )
        for entry in name_spec.bin
    )
    scale = tuple(
        ScaleSpec(
            id=columns.id_of(entry.name),
            method=_parse_method(entry.method, ScaleMethod, "scale", entry.name),
        )
        for entry in name_spec.scale
    )
    dummycode = tuple(
        DummycodeSpec(id=columns.id_of(name)) for name in name_spec.dummycode
    )

    spec = TransformSpec(
        num_columns=len(columns),
        impute=impute,
        recode=recode,
        bin=bins,
        scale=scale,
        dummycode=dummycode,
    )
    _check_combinations(spec, columns)

    logger.debug(
        f"Compiled spec over {spec.num_columns} columns: "
        f"{len(impute)} impute, {len(recode)} recode, {len(bins)} bin, "
        f"{len(scale)} scale, {len(dummycode)} dummycode"
    )
    return spec


def _parse_method(method: str, methods: type[E], category: str, column: str) -> E:
    key = unquote(method).lower()
    for member in methods:
        if member.value == key:
            return member

    if key in _UNIMPLEMENTED_METHODS.get(category, set()):
        message = f"{category} method '{key}' is not supported yet"
    else:
        message = f"Unknown {category} method '{key}'"
    raise UnsupportedMethodError(
        message,
        context={
            "category": category,
            "method": key,
            "column_name": column,
            "supported": [m.value for m in methods],
        },
    )


def _constant_value(method: str, value, column: str) -> str | None:
    if unquote(method).lower() != ImputeMethod.CONSTANT.value:
        return None
    if value is None:
        raise InvalidSpecError(
            "Constant imputation requires a value", context={"column_name": column}
        )
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _num_bins(num_bins: int | None, column: str) -> int:
    if num_bins is None or num_bins < 1:
        raise InvalidSpecError(
            "Binning requires a positive number of bins",
            context={"column_name": column, "num_bins": num_bins},
        )
    return num_bins


def _check_combinations(spec: TransformSpec, columns: ColumnIndex) -> None:
    ids = {method.value: spec.ids(method) for method in TransformMethod}

    for category, column_ids in ids.items():
        seen: set[int] = set()
        for column_id in column_ids:
            if column_id in seen:
                raise InvalidSpecError(
                    f"Column listed more than once for {category}",
                    context={**columns.describe(column_id), "category": category},
                )
            seen.add(column_id)

    recode, bins = set(ids["recode"]), set(ids["bin"])
    dummycode, scale = set(ids["dummycode"]), set(ids["scale"])

    _reject(
        recode & bins, columns, "Column cannot be both recoded and binned"
    )
    _reject(
        scale & (recode | bins | dummycode),
        columns,
        "Scaled column cannot also be recoded, binned or dummy-coded",
    )
    _reject(
        dummycode - recode - bins,
        columns,
        "Dummy-coded column must also be recoded or binned",
    )


def _reject(conflicts: set[int], columns: ColumnIndex, message: str) -> None:
    if conflicts:
        column_id = min(conflicts)
        raise InvalidSpecError(message, context=columns.describe(column_id))
