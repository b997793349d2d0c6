# -*- coding: utf-8 -*-
# ---
# jupyter:
#   jupytext:
#     formats: py:percent
#     notebook_metadata_filter: -jupytext.text_representation.jupytext_version,-kernelspec
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
# ---

# %% [markdown]
# # Contracting sparse symmetric tensors with vectors
#
# Normally these functions would be accessed from the top level:
# ```python
# import ssstensor
# ssstensor.contract(A, x, 2)
# ```

# %%
from __future__ import annotations

# %%
from collections.abc import Sequence as Sequence_
from enum import Enum
from numbers import Integral
from operator import itemgetter
import logging

import numpy as np
import scipy.sparse as sp
from more_itertools import unique_everseen

from typing import Any, Dict, Iterator, List, NamedTuple, Tuple, Union
from scityping import Number
from scityping.numpy import Array

# %% tags=["active-py"]
from .sssten import SSSTensor
from .dense import dense_contract
from . import utils

# %%
__all__ = [
    "contract_edge", "contract_edge_k_1",
    "contract", "contract_k_1", "contract_multi",
    "Intermediate", "IntermediateKind"
    ]

# %%
logger = logging.getLogger(__name__)

# %% [markdown]
# ## Notation
#
# | Symbol | Desc                                | Code                       |
# |--------|-------------------------------------|----------------------------|
# | $k$    | order of the tensor (or edge)       | `A.order`, `len(indices)`  |
# | $n$    | cubical dimension                   | `A.cubical_dimension`      |
# | $m$    | number of contracted modes          | `m`                        |
# | $r$    | residual order, $k - m$             | `r`                        |
# | $e$    | hyperedge: (sorted index, weight)   | `edge = (indices, val)`    |
#
# Contracting $A$ with $x$ along $m$ modes means
#
# $$\bigl(A x^m\bigr)_{i_1 \dotsb i_r} = \sum_{j_1, \dotsc, j_m} A_{i_1 \dotsb i_r j_1 \dotsb j_m} \, x_{j_1} \dotsb x_{j_m} \,.$$
#
# Since $A$ is symmetric, it does not matter *which* modes are contracted, and the result is again symmetric.

# %% [markdown]
# ## Contracting a single hyperedge

# %% [markdown]
# ### Distinct reductions
#
# Removing one position from an index gives a *reduced* index. Positions holding the same value give the same reduced index, and only the first of them is kept: values are de-duplicated by the resulting index, not by position.

# %%
def _distinct_reductions(indices: Tuple[int, ...]) -> Iterator[Tuple[Tuple[int, ...], int]]:
    "Yield ``(reduced index, removed value)`` pairs, one per distinct reduced index."
    reductions = ((indices[:i] + indices[i+1:], indices[i]) for i in range(len(indices)))
    return unique_everseen(reductions, key=itemgetter(0))


# %% [markdown]
# ### `contract_edge`
#
# A hyperedge $(I, w)$ of length $d$ stands for every permutation of $I$. Contracting it along $k$ modes peels off one index value at a time:
# - For each distinct reduced index $I \setminus \{i\}$, the weight is multiplied by $x_i$.
# - If $k = 1$, the pair (reduced index, new weight) is a result.
# - Otherwise, recurse on the reduced edge with $k - 1$, and merge the resulting dictionaries.
#
# Each path through the recursion corresponds to one distinct *ordered* sequence of removed values. Counting those sequences is exactly the number of dense components $A_{R, j_1 \dotsb j_k}$ which contribute to the remaining index $R$, so no further multiplicity factor is needed.
#
# **Example** $I = (0, 0, 1)$, $w = 3$, $x = (2, 5)$, $k = 1$:
# - remove position 0 → $(0, 1)$, weight $3 \cdot x_0 = 6$
# - remove position 1 → $(0, 1)$ again: skipped
# - remove position 2 → $(0, 0)$, weight $3 \cdot x_1 = 15$
#
# The recursion depth is bounded by $k$, which is at most the order of the tensor.

# %%
def contract_edge(edge: Tuple[Tuple[int, ...], Number], x: Array, k: int
    ) -> Dict[Tuple[int, ...], Number]:
    """
    Compute the hyperedges of the lower order tensor produced by contracting
    the hyperedge `edge` along `k` modes with the vector `x`.

    Parameters
    ----------
    edge: ``(indices, val)``: a sorted index paired with its weight.
       The index stands for all of its permutations.
    x: The vector to contract with.
    k: Number of modes to contract; ``1 ≤ k ≤ len(indices)``.

    Returns
    -------
    Dictionary mapping indices of length ``len(indices) - k`` to their
    accumulated value.
    """
    indices, val = edge
    condensed = {}
    for sub_edge, i in _distinct_reductions(tuple(indices)):
        if k == 1:
            condensed[sub_edge] = val * x[i]
        else:
            utils.reduce_dictionaries(
                condensed, contract_edge((sub_edge, val * x[i]), x, k-1))
    return condensed


# %% [markdown]
# ### `contract_edge_k_1`
#
# The most common contraction, $A x^{k-1}$, leaves a single index. Instead of walking the whole recursion tree, all paths leading to the same remaining index $(v)$ can be counted directly: they are the distinct orderings of $I \setminus \{v\}$, i.e. its multiplicity factor. Hence
#
# $$\bigl(A x^{k-1}\bigr)_v \mathrel{+}= γ_{I \setminus \{v\}} \; w \prod_{j \in I \setminus \{v\}} x_j \,,$$
#
# for each *distinct* value $v$ in $I$. This is linear in $d$ instead of combinatorial.
#
# Returns a list of pairs rather than a dictionary: indices from one edge never collide, so the merge is deferred to `contract_k_1`.

# %%
def contract_edge_k_1(edge: Tuple[Tuple[int, ...], Number], x: Array
    ) -> List[Tuple[Tuple[int], Number]]:
    """
    Compute the contributions of `edge` to the contraction ``A x^{k-1}``,
    where ``k = len(indices)``.

    Numerically equivalent (up to floating point error) to
    ``contract_edge(edge, x, len(indices) - 1)``.

    Returns
    -------
    List of ``((v,), value)`` pairs, one per distinct value `v` in the index.
    """
    indices, val = edge
    contraction_vals = []
    for sub_edge, i in _distinct_reductions(tuple(indices)):
        scaling = utils.permutation_count(sub_edge)
        contraction_vals.append(((i,), scaling * val * np.prod([x[j] for j in sub_edge])))
    return contraction_vals


# %% [markdown]
# ## Contracting a tensor

# %% [markdown]
# ### Argument validation
#
# All checks are done before any work: a contraction either succeeds or raises without partial results.

# %%
def _validate_vector(A: SSSTensor, x) -> Array:
    x = np.asarray(x)
    if x.ndim != 1 or len(x) != A.cubical_dimension:
        raise ValueError("Dimensions of tensor and vector must match; received "
                         f"{A.cubical_dimension} (tensor) and {x.shape} (vector).")
    return x

def _validate_modes(A: SSSTensor, m) -> int:
    if not isinstance(m, Integral) or isinstance(m, bool):
        raise TypeError(f"Number of contracted modes must be an integer; received {m!r}.")
    if not 0 < m <= A.order:
        raise ValueError(f"Cannot contract {m} modes of a tensor of order {A.order}: "
                         f"the number of modes must be between 1 and {A.order}.")
    return int(m)


# %% [markdown]
# ### Output format
#
# The type of the result depends on the residual order $r = k - m$:
#
# | $r$      | Result                                                           |
# |----------|------------------------------------------------------------------|
# | 0        | scalar                                                           |
# | 1        | dense vector (`ndarray`) of length $n$                           |
# | 2        | sparse symmetric matrix (`scipy.sparse.csc_array`), $n \times n$ |
# | $\geq 3$ | `SSSTensor` of order $r$ and dimension $n$                       |
#
# For $r = 2$ each off-diagonal hyperedge $(i, j)$ is written to both $(i, j)$ and $(j, i)$, while diagonal entries are written once.

# %%
def _symmetric_sparse_matrix(edges: Dict[Tuple[int, int], Number], n: int, dtype
    ) -> sp.csc_array:
    nnzs = len(edges)
    I = np.zeros(2*nnzs, dtype=np.int64)
    J = np.zeros(2*nnzs, dtype=np.int64)
    V = np.zeros(2*nnzs, dtype=dtype)
    index = 0
    for (i, j), val in edges.items():
        I[index], J[index], V[index] = i, j, val
        index += 1
        if i != j:
            I[index], J[index], V[index] = j, i, val
            index += 1
    return sp.csc_array((V[:index], (I[:index], J[:index])), shape=(n, n))

# %%
def _materialize(edges: Dict[Tuple[int, ...], Number], r: int, n: int, dtype
    ) -> Union[Number, Array, sp.csc_array, SSSTensor]:
    if r == 0:
        # All contributions were accumulated under the single key ()
        return dtype.type(edges.get((), 0))
    elif r == 1:
        y = np.zeros(n, dtype=dtype)
        for (i,), val in edges.items():
            y[i] = val
        return y
    elif r == 2:
        return _symmetric_sparse_matrix(edges, n, dtype)
    else:
        return SSSTensor(edges, cubical_dimension=n, order=r)


# %% [markdown]
# ### `contract`

# %%
def _contract_sssten(A: SSSTensor, x: Array, m: int
    ) -> Union[Number, Array, sp.csc_array, SSSTensor]:
    x = _validate_vector(A, x)
    m = _validate_modes(A, m)
    k = A.order
    logger.debug(f"Contracting {A} along {m} modes.")

    new_edges = {}
    for edge in A.edges.items():
        utils.reduce_dictionaries(new_edges, contract_edge(edge, x, m))

    return _materialize(new_edges, k - m, A.cubical_dimension,
                        np.result_type(A.dtype, x.dtype))

# %%
def contract(A: Union[SSSTensor, Array], x: Array, m: Union[int, Array]
    ) -> Union[Number, Array, sp.csc_array, SSSTensor]:
    """
    Contract the tensor `A` with the vector `x`.

    Three forms are supported:

    ``contract(A, x, m)`` with `A` an `SSSTensor`
        Contract along `m` modes; the type of the result depends on the
        residual order ``A.order - m``: scalar (0), dense vector (1),
        sparse symmetric matrix (2), or `SSSTensor` (≥ 3).
    ``contract(A, v, u)`` with `A` an `SSSTensor`
        Contract first with `v`, then with `u`.
        Equivalent to ``contract_multi(A, [v, u])``.
    ``contract(A, x, m)`` with `A` a NumPy array
        Contract the last `m` axes of the dense array; see `dense_contract`.

    Raises
    ------
    ValueError:
      - If the length of `x` does not match the dimension of `A`.
      - If `m` is not within ``[1, order]``.
    TypeError:
      - If `A` is neither an `SSSTensor` nor a NumPy array.
    """
    if isinstance(A, np.ndarray):
        return dense_contract(A, x, m)
    elif not isinstance(A, SSSTensor):
        raise TypeError("`contract` expects either an SSSTensor or a NumPy array; "
                        f"received {type(A)}.")
    if isinstance(m, Integral) and not isinstance(m, bool):
        return _contract_sssten(A, x, m)
    elif np.ndim(m) == 0:
        raise TypeError(f"Number of contracted modes must be an integer; received {m!r}.")
    else:
        return contract_multi(A, [x, m])


# %% [markdown]
# ### `contract_k_1`
#
# Same result as `contract(A, x, A.order-1)`, but uses `contract_edge_k_1` for each edge, which is much faster for higher orders.

# %%
def contract_k_1(A: SSSTensor, x: Array) -> Array:
    """
    Return the vector ``A x^{k-1}``, where ``k = A.order``.

    Raises
    ------
    ValueError:
      - If the length of `x` does not match the dimension of `A`.
      - If ``A.order < 2``: there would be no modes to contract.
    """
    x = _validate_vector(A, x)
    if A.order < 2:
        raise ValueError("`contract_k_1` requires a tensor of order at least 2; "
                         f"received a tensor of order {A.order}.")
    logger.debug(f"Contracting {A} along {A.order-1} modes (fast path).")

    new_edges = []
    for edge in A.edges.items():
        new_edges.extend(contract_edge_k_1(edge, x))
    edge_dict = utils.reduce_edges(new_edges)

    return _materialize(edge_dict, 1, A.cubical_dimension,
                        np.result_type(A.dtype, x.dtype))


# %% [markdown]
# ## Contracting with several vectors
#
# `contract_multi(A, Vs)` applies the vectors one after the other, each time along one mode. The intermediate result changes type as its order decreases:
#
# ```
# SSSTensor (order k) → … → SSSTensor (order 3) → sparse matrix → vector → scalar
# ```
#
# The intermediate is represented by `Intermediate`, which pairs the value with a tag saying which of these forms it has. `Intermediate.apply` dispatches on that tag:
#
# | Kind     | Applying a vector $v$                     |
# |----------|-------------------------------------------|
# | `TENSOR` | `contract(value, v, 1)`                   |
# | `MATRIX` | matrix-vector product `value @ v`         |
# | `VECTOR` | dot product `np.dot(value, v)`            |
# | `SCALAR` | not possible: no modes left               |

# %%
class IntermediateKind(Enum):
    TENSOR = "tensor"
    MATRIX = "matrix"
    VECTOR = "vector"
    SCALAR = "scalar"

# %%
class Intermediate(NamedTuple):
    kind  : IntermediateKind
    order : int
    value : Any

    @classmethod
    def from_tensor(cls, A: SSSTensor) -> Intermediate:
        return cls(IntermediateKind.TENSOR, A.order, A)

    def apply(self, v: Array) -> Intermediate:
        "Contract one mode with `v` and return the new intermediate."
        r = self.order - 1
        if self.kind is IntermediateKind.TENSOR:
            value = _contract_sssten(self.value, v, 1)
            if r == 0:
                kind = IntermediateKind.SCALAR
            elif r == 1:
                kind = IntermediateKind.VECTOR
            elif r == 2:
                kind = IntermediateKind.MATRIX
            else:
                kind = IntermediateKind.TENSOR
            return Intermediate(kind, r, value)
        elif self.kind is IntermediateKind.MATRIX:
            return Intermediate(IntermediateKind.VECTOR, r, self.value @ v)
        elif self.kind is IntermediateKind.VECTOR:
            return Intermediate(IntermediateKind.SCALAR, r, np.dot(self.value, v))
        else:
            raise ValueError("Cannot contract a scalar with a vector: no modes are left.")

# %% [markdown]
# ### `contract_multi`

# %%
def _as_columns(Vs) -> List[Array]:
    if isinstance(Vs, np.ndarray) and Vs.ndim == 2:
        return list(Vs.T)
    elif isinstance(Vs, np.ndarray) and Vs.ndim == 1:
        return [Vs]
    elif isinstance(Vs, Sequence_):
        return [np.asarray(v) for v in Vs]
    else:
        raise TypeError("Vectors must be provided either as the columns of a "
                        f"2-d array or as a sequence of vectors; received {type(Vs)}.")

# %%
def contract_multi(A: SSSTensor, Vs: Union[Array, Sequence_]
    ) -> Union[Number, Array, sp.csc_array, SSSTensor]:
    """
    Contract the tensor `A` with each of the vectors in `Vs`, one mode each.

    Parameters
    ----------
    A: Tensor of order `k` and dimension `n`.
    Vs: Either an array of shape ``(n, m)``, whose *columns* are the vectors,
        or a sequence of `m` vectors of length `n`. Requires ``m ≤ k``.

    Returns
    -------
    The object corresponding to the residual order ``k - m``: `SSSTensor`,
    sparse matrix, vector or scalar. If `Vs` is empty, `A` is returned.

    Raises
    ------
    ValueError:
      - If there are more vectors than `A` has modes.
      - If the length of one of the vectors does not match the dimension of `A`.
    """
    if not isinstance(A, SSSTensor):
        raise TypeError(f"`contract_multi` expects an SSSTensor; received {type(A)}.")
    columns = _as_columns(Vs)
    if len(columns) > A.order:
        raise ValueError(f"Cannot contract a tensor of order {A.order} with "
                         f"{len(columns)} vectors.")
    columns = [_validate_vector(A, v) for v in columns]
    logger.debug(f"Contracting {A} with {len(columns)} vectors.")

    intermediate = Intermediate.from_tensor(A)
    for v in columns:
        intermediate = intermediate.apply(v)
    return intermediate.value


# %% tags=["active-ipynb"]
# A = SSSTensor({(0, 0, 1): 3.0}, cubical_dimension=2)
# x = np.array([2., 5.])
# print(contract(A, x, 1).toarray())   # [[15, 6], [6, 0]]
# print(contract(A, x, 2))             # [60, 12]
# print(contract(A, x, 3))             # 180
# print(contract_k_1(A, x))            # [60, 12]
