"""
Spatial weights matrix with transformations and cached moments.

A weights matrix maps every entity id to an ordered list of neighbour ids
and a parallel list of weights. Supported transformations:
- O: original weights as built
- B: binary, every nonzero weight set to 1.0
- R: row-standardized, each row divided by its sum (islands untouched)

Each transformation is stored once as a write-once snapshot. Switching
mode drops the derived caches (s0, s1, s2, sparse operator, index
triples) and they are rebuilt lazily on the next access.

Matrix moments:
    s0 = sum_ij w_ij
    s1 = 1/2 sum_ij (w_ij + w_ji)^2
    s2 = sum_i (w_i. + w_.i)^2
"""

import logging
from types import MappingProxyType
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy import sparse as sp_sparse

from geoesda.config.dataclasses import TransformMode

logger = logging.getLogger(__name__)


def _transform_weights(original: dict, mode: TransformMode) -> dict:
    """Derive the weight rows of ``mode`` from the original rows."""
    if mode is TransformMode.ORIGINAL:
        return {i: tuple(row) for i, row in original.items()}

    if mode is TransformMode.BINARY:
        return {i: tuple(1.0 if w != 0 else 0.0 for w in row) for i, row in original.items()}

    # Row-standardized; zero-sum rows (islands) keep their weights.
    transformed = {}
    for i, row in original.items():
        row_sum = float(sum(row))
        if row_sum == 0:
            transformed[i] = tuple(row)
        else:
            transformed[i] = tuple(w / row_sum for w in row)
    return transformed


def check_unique_ids(ids) -> None:
    """
    Raise ValueError if any entity id appears more than once.

    Ids are compared as strings, so ``1`` and ``"1"`` collide.
    """
    counts = pd.Series([str(i) for i in ids], dtype=object).value_counts()
    duplicated = sorted(counts.index[counts > 1])
    if duplicated:
        raise ValueError(
            f"Entity ids must be unique; duplicated: {', '.join(repr(d) for d in duplicated)}"
        )


class WeightsMatrix:
    """
    Sparse spatial weights keyed by entity id.

    Parameters
    ----------
    neighbors : dict
        Mapping of id -> sequence of neighbour ids.
    weights : dict, optional
        Mapping of id -> sequence of weights parallel to ``neighbors``.
        Default: 1.0 for every neighbour.
    id_order : sequence, optional
        Entity ids. Default: the keys of ``neighbors``. Always stored
        sorted lexicographically.

    Examples
    --------
    >>> w = WeightsMatrix({"A": ["B", "C"], "B": ["A"], "C": ["A"]})
    >>> w.set_transform("R")
    >>> w.weights["A"]
    (0.5, 0.5)
    >>> w.s0
    3.0

    Notes
    -----
    Ids are stringified on construction. Neighbour ids that are not in
    ``id_order`` are ignored by every matrix computation.
    """

    def __init__(self, neighbors: dict, weights: Optional[dict] = None, id_order=None):
        self.neighbors = MappingProxyType(
            {str(k): tuple(str(j) for j in v) for k, v in neighbors.items()}
        )

        if weights is None:
            original = {k: tuple(1.0 for _ in v) for k, v in self.neighbors.items()}
        else:
            original = {str(k): tuple(float(x) for x in v) for k, v in weights.items()}
            for k, v in self.neighbors.items():
                row = original.setdefault(k, ())
                if len(row) != len(v):
                    raise ValueError(
                        f"Entity {k!r} has {len(v)} neighbours but {len(row)} weights"
                    )

        ids = neighbors.keys() if id_order is None else id_order
        self._id_order = tuple(sorted(str(i) for i in ids))
        check_unique_ids(self._id_order)
        self.n = len(self._id_order)

        self._snapshots = {TransformMode.ORIGINAL: MappingProxyType(original)}
        self._transform = TransformMode.ORIGINAL
        self._cache = {}

    # ------------------------------------------------------------------
    # transformations
    # ------------------------------------------------------------------
    @property
    def transform(self) -> str:
        """Code of the active transformation (``"O"``, ``"B"`` or ``"R"``)."""
        return self._transform.value

    @transform.setter
    def transform(self, value: Union[str, TransformMode]):
        self.set_transform(value)

    def set_transform(self, value: Union[str, TransformMode] = "B") -> None:
        """
        Activate a transformation.

        Parameters
        ----------
        value : str or TransformMode
            ``"O"``, ``"B"`` or ``"R"`` (case-insensitive).

        Raises
        ------
        ConfigurationError
            If the transformation is not supported.
        """
        mode = TransformMode.parse(value)
        if mode is self._transform:
            return
        if mode not in self._snapshots:
            original = self._snapshots[TransformMode.ORIGINAL]
            self._snapshots[mode] = MappingProxyType(_transform_weights(original, mode))
            logger.debug(f"Computed weights snapshot for transform {mode.value}")
        self._transform = mode
        self._reset()

    def _reset(self) -> None:
        self._cache = {}

    @property
    def weights(self):
        """Read-only weight rows of the active transformation."""
        return self._snapshots[self._transform]

    @property
    def transformations(self) -> dict:
        """Snapshots computed so far, keyed by transform code."""
        return {mode.value: snap for mode, snap in self._snapshots.items()}

    # ------------------------------------------------------------------
    # ids
    # ------------------------------------------------------------------
    @property
    def id_order(self) -> list:
        return list(self._id_order)

    @property
    def id2i(self) -> dict:
        """Mapping of id -> position in ``id_order``."""
        if "id2i" not in self._cache:
            self._cache["id2i"] = {id_: i for i, id_ in enumerate(self._id_order)}
        return self._cache["id2i"]

    @property
    def cardinalities(self) -> dict:
        """Number of neighbours of every entity."""
        if "cardinalities" not in self._cache:
            self._cache["cardinalities"] = {
                id_: len(self.neighbors.get(id_, ())) for id_ in self._id_order
            }
        return self._cache["cardinalities"]

    @property
    def islands(self) -> list:
        """Ids of entities without neighbours."""
        if "islands" not in self._cache:
            self._cache["islands"] = [i for i, c in self.cardinalities.items() if c == 0]
        return self._cache["islands"]

    # ------------------------------------------------------------------
    # sparse views
    # ------------------------------------------------------------------
    @property
    def sparse_ix(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Flattened (focal index, neighbour index, weight) arrays.

        Edges are listed in the enumeration order of ``neighbors``.
        """
        if "sparse_ix" not in self._cache:
            id2i = self.id2i
            weights = self.weights
            focal_ix = []
            neighbor_ix = []
            values = []
            for i_id, neighs in self.neighbors.items():
                i = id2i.get(i_id)
                if i is None:
                    continue
                row = weights[i_id]
                for k, j_id in enumerate(neighs):
                    j = id2i.get(j_id)
                    if j is None:
                        continue
                    focal_ix.append(i)
                    neighbor_ix.append(j)
                    values.append(row[k])
            self._cache["sparse_ix"] = (
                np.asarray(focal_ix, dtype=np.int64),
                np.asarray(neighbor_ix, dtype=np.int64),
                np.asarray(values, dtype=np.float64),
            )
        return self._cache["sparse_ix"]

    @property
    def sparse(self) -> sp_sparse.csr_matrix:
        """Weights as an (n x n) CSR matrix in ``id_order``."""
        if "sparse" not in self._cache:
            rows, cols, values = self.sparse_ix
            self._cache["sparse"] = sp_sparse.csr_matrix(
                (values, (rows, cols)), shape=(self.n, self.n), dtype=np.float64
            )
        return self._cache["sparse"]

    def full(self) -> np.ndarray:
        """
        Dense (n x n) weights matrix.

        Repeated (i, j) pairs keep the last weight listed.
        """
        rows, cols, values = self.sparse_ix
        dense = np.zeros((self.n, self.n), dtype=np.float64)
        dense[rows, cols] = values
        return dense

    # ------------------------------------------------------------------
    # moments
    # ------------------------------------------------------------------
    @property
    def s0(self) -> float:
        """Sum of all weights."""
        if "s0" not in self._cache:
            self._cache["s0"] = float(sum(sum(row) for row in self.weights.values()))
        return self._cache["s0"]

    @property
    def s1(self) -> float:
        """Half the sum of squared symmetric weight sums."""
        if "s1" not in self._cache:
            dense = self.full()
            self._cache["s1"] = float(((dense + dense.T) ** 2).sum() / 2.0)
        return self._cache["s1"]

    @property
    def s2(self) -> float:
        """Sum of squared (row sum + column sum)."""
        if "s2" not in self._cache:
            rows, cols, values = self.sparse_ix
            row_sums = np.bincount(rows, weights=values, minlength=self.n)
            col_sums = np.bincount(cols, weights=values, minlength=self.n)
            self._cache["s2"] = float(((row_sums + col_sums) ** 2).sum())
        return self._cache["s2"]

    # ------------------------------------------------------------------
    # adjacency list
    # ------------------------------------------------------------------
    def to_adjlist(self, remove_symmetric: bool = False, drop_islands: bool = True) -> pd.DataFrame:
        """
        Directed adjacency list of the active weights.

        Parameters
        ----------
        remove_symmetric : bool, default=False
            Drop pairs whose focal id sorts after the neighbour id.
        drop_islands : bool, default=True
            If False, islands are listed as zero-weight self-loops.

        Returns
        -------
        pd.DataFrame
            Columns ``focal``, ``neighbor``, ``weight``.

        Notes
        -----
        KNN relations are directed, so an edge listed from one side only
        appears once here.
        """
        focals = []
        neighbors = []
        weights = []
        for focal, neighs in self.neighbors.items():
            row = self.weights[focal]
            for k, neighbor in enumerate(neighs):
                if remove_symmetric and focal > neighbor:
                    continue
                focals.append(focal)
                neighbors.append(neighbor)
                weights.append(row[k])

        if not drop_islands:
            for island in self.islands:
                focals.append(island)
                neighbors.append(island)
                weights.append(0.0)

        return pd.DataFrame(
            {
                "focal": pd.Series(focals, dtype=object),
                "neighbor": pd.Series(neighbors, dtype=object),
                "weight": pd.Series(weights, dtype=np.float64),
            }
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n={self.n}, transform={self.transform!r})"
