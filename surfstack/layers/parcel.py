"""Parcel-level values expanded onto vertices through a parcellation.

A parcel table is a plain dict::

    {
        "schema_version": "1.0.0",
        "atlas": {"id": "aparc", "name": "Desikan-Killiany", "n_parcels": 2},
        "parcels": [
            {"id": 1, "label": "bankssts", "hemi": "left", "value": 2.3},
            {"id": 2, "label": "caudalanteriorcingulate", "hemi": "left", "value": -0.4},
        ],
    }

Every parcel row carries an integer ``id``, a ``label`` and a ``hemi``
(string or None); any other key is a value column.
"""

import logging
import numbers
from collections.abc import Mapping

import numpy as np

from ..errors import InvalidInputError
from ..geometry.inputs import resolve_indices
from ..utils.types import LayerKind
from .data import DataLayer
from .label import resolve_labels

# Module logger
logger = logging.getLogger(__name__)

ATLAS_REPRESENTATIONS = ("volume", "surface", "derived")
ATLAS_CONFIDENCE = ("exact", "high", "approximate", "uncertain")


def _fail(message):
    logger.error("validate_parcel_data: %s", message)
    raise InvalidInputError(message)


def _is_integer(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Integral):
        return True
    return isinstance(value, numbers.Real) and np.isfinite(value) and float(value).is_integer()


def _non_empty_string(value):
    return isinstance(value, str) and bool(value.strip())


def validate_parcel_data(parcel_data, strict=True):
    """Check the structure of a parcel table.

    Parameters
    ----------
    parcel_data : dict
        Parcel table, see the module docstring.
    strict : bool, optional
        When True (default), ``atlas['n_parcels']`` must match the number of
        parcel rows if it is given.

    Returns
    -------
    dict
        ``parcel_data`` unchanged.

    Raises
    ------
    InvalidInputError
        If a required field is missing or malformed, or parcel ids repeat.
    """
    if not isinstance(parcel_data, Mapping):
        _fail("parcel data must be a dict")
    if not _non_empty_string(parcel_data.get("schema_version")):
        _fail("'schema_version' must be a non-empty string")
    atlas = parcel_data.get("atlas")
    if not isinstance(atlas, Mapping):
        _fail("'atlas' must be a dict")
    if not _non_empty_string(atlas.get("id")):
        _fail("'atlas.id' must be a non-empty string")
    parcels = parcel_data.get("parcels")
    if isinstance(parcels, (str, bytes, Mapping)) or not hasattr(parcels, "__iter__"):
        _fail("'parcels' must be a list")

    seen = set()
    for i, row in enumerate(parcels):
        if not isinstance(row, Mapping):
            _fail(f"parcels[{i}] must be a dict")
        if not _is_integer(row.get("id")):
            _fail(f"parcels[{i}].id must be a finite integer")
        parcel_id = int(row["id"])
        if parcel_id in seen:
            _fail(f"parcel ids must be unique; duplicate id {parcel_id}")
        seen.add(parcel_id)
        if not isinstance(row.get("label"), str):
            _fail(f"parcels[{i}].label must be a string")
        if row.get("hemi") is not None and not isinstance(row["hemi"], str):
            _fail(f"parcels[{i}].hemi must be a string or None")

    n_parcels = atlas.get("n_parcels")
    if strict and n_parcels is not None:
        if not _is_integer(n_parcels):
            _fail("'atlas.n_parcels' must be an integer when provided")
        if int(n_parcels) != len(seen):
            _fail("'atlas.n_parcels' does not match parcel row count")
    if atlas.get("representation") is not None \
            and atlas["representation"] not in ATLAS_REPRESENTATIONS:
        _fail(f"'atlas.representation' must be one of: {', '.join(ATLAS_REPRESENTATIONS)}")
    if atlas.get("confidence") is not None and atlas["confidence"] not in ATLAS_CONFIDENCE:
        _fail(f"'atlas.confidence' must be one of: {', '.join(ATLAS_CONFIDENCE)}")
    return parcel_data


def build_parcel_lookup(parcel_data):
    """Return ``{parcel_id: row}`` for a validated parcel table."""
    validate_parcel_data(parcel_data)
    return {int(row["id"]): row for row in parcel_data["parcels"]}


def _check_column(value_column):
    if not isinstance(value_column, str) or not value_column:
        raise InvalidInputError(f"value_column must be a non-empty string, got {value_column!r}.")
    return value_column


def _numeric(value, value_column):
    """Parcel cell as float; missing or non-finite cells become NaN."""
    if value is None:
        return np.nan
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(f"Parcel value {value_column!r} must be numeric, got {value!r}.")
    value = float(value)
    return value if np.isfinite(value) else np.nan


def map_parcel_values(parcel_ids, parcel_data, value_column="value"):
    """Look up one value column for a sequence of parcel ids.

    Parameters
    ----------
    parcel_ids : array_like of int
        Parcel id per output entry, e.g. a per-vertex label array.
    parcel_data : dict
        Parcel table.
    value_column : str, optional
        Column to read. Default ``'value'``.

    Returns
    -------
    numpy.ndarray
        float32 values; ids absent from the table map to NaN.
    """
    _check_column(value_column)
    ids = resolve_labels(parcel_ids, name="parcel ids")
    lookup = build_parcel_lookup(parcel_data)
    table = {pid: _numeric(row.get(value_column), value_column) for pid, row in lookup.items()}
    out = np.full(ids.shape[0], np.nan, dtype=np.float32)
    if table:
        keys = np.array(sorted(table), dtype=np.int64)
        values = np.array([table[k] for k in keys.tolist()], dtype=np.float32)
        pos = np.clip(np.searchsorted(keys, ids), 0, keys.shape[0] - 1)
        known = keys[pos] == ids
        out[known] = values[pos[known]]
    return out


class ParcelValueLayer(DataLayer):
    """Per-parcel values drawn on every vertex of their parcel.

    Vertices whose label has no row in the parcel table, or whose row holds
    no finite value in the active column, are left transparent.

    Parameters
    ----------
    layer_id : str
    parcel_data : dict
        Parcel table, see :func:`validate_parcel_data`.
    vertex_labels : array_like of int
        Parcel id per vertex.
    colormap : ColorMap, str or sequence, optional
        Default ``'viridis'``.
    value_column : str, optional
        Column of the parcel table to display. Default ``'value'``.
    **kwargs
        Forwarded to :class:`~surfstack.layers.data.DataLayer`
        (``value_range``, ``threshold``, ``registry`` and the common layer
        settings).
    """

    kind = LayerKind.PARCEL
    # data is derived from the parcel table, so it is not set directly
    update_keys = (DataLayer.update_keys - {"data", "indices"}) | {
        "parcel_data", "vertex_labels", "value_column",
    }
    default_colormap = "viridis"

    def __init__(self, layer_id, parcel_data, vertex_labels, colormap=None,
                 value_column="value", **kwargs):
        lookup = build_parcel_lookup(parcel_data)
        labels = resolve_labels(vertex_labels, name="vertex_labels")
        value_column = _check_column(value_column)
        values = map_parcel_values(labels, parcel_data, value_column)
        super().__init__(layer_id, values, colormap=colormap, **kwargs)
        self._parcel_data = parcel_data
        self._parcel_lookup = lookup
        self._vertex_labels = labels
        self._value_column = value_column
        logger.debug(
            "ParcelValueLayer %s: %d parcels over %d vertices",
            self.id, len(lookup), labels.shape[0],
        )

    @property
    def parcel_data(self):
        return self._parcel_data

    @property
    def value_column(self):
        return self._value_column

    @property
    def vertex_labels(self):
        return self._vertex_labels.copy()

    def get_parcel_metadata(self, parcel_id):
        """Return the table row of ``parcel_id``, or None."""
        return self._parcel_lookup.get(int(parcel_id))

    def get_parcel_value(self, parcel_id, value_column=None):
        """Return the finite value of ``parcel_id`` in a column, or None."""
        row = self._parcel_lookup.get(int(parcel_id))
        if row is None:
            return None
        value = row.get(self._value_column if value_column is None else value_column)
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return None
        value = float(value)
        return value if np.isfinite(value) else None

    def set_parcel_data(self, parcel_data, value_column=None):
        changes = {"parcel_data": parcel_data}
        if value_column is not None:
            changes["value_column"] = value_column
        self.update(**changes)

    def set_vertex_labels(self, vertex_labels):
        self.update(vertex_labels=vertex_labels)

    def set_value_column(self, value_column):
        self.update(value_column=value_column)

    def _stage(self, changes):
        staged = super()._stage(changes)
        if not changes.keys() & {"parcel_data", "vertex_labels", "value_column"}:
            return staged
        parcel_data = changes.get("parcel_data", self._parcel_data)
        lookup = build_parcel_lookup(parcel_data)
        if "vertex_labels" in changes:
            labels = resolve_labels(changes["vertex_labels"], name="vertex_labels")
        else:
            labels = self._vertex_labels
        value_column = _check_column(changes.get("value_column", self._value_column))
        values = map_parcel_values(labels, parcel_data, value_column)
        staged.update(
            _parcel_data=parcel_data,
            _parcel_lookup=lookup,
            _vertex_labels=labels,
            _value_column=value_column,
            _data=values,
            _indices=resolve_indices(None, n_values=values.shape[0]),
        )
        return staged

    def to_state(self):
        state = super().to_state()
        state.update(
            value_column=self._value_column,
            atlas_id=self._parcel_data["atlas"]["id"],
            schema_version=self._parcel_data["schema_version"],
            parcel_count=len(self._parcel_lookup),
        )
        return state
