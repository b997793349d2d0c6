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
# # Testing contractions of `SSSTensor`

# %%
import itertools

import numpy as np
import scipy.sparse as sp
import pytest

# %%
import ssstensor as sst
from ssstensor import SSSTensor, contract, contract_k_1, contract_edge, contract_edge_k_1, dense_contract
from ssstensor.testing.utils import random_sssten, as_dense, does_not_warn

# %% [markdown] tags=["remove-input"]
# Tests are grouped in a class so that the tensors used for the generic checks are defined in one place (`get_test_tensors`).
#
# **Important:** In order to keep the class definition intact when this file is consumed as a script, **all code cells below the class header must be indented**.

# %%
class TestContraction:

    def get_test_tensors(self, max_order=5):
        for k, n in itertools.product([1, 2, 3, 4, 5], [2, 3, 4]):
            if k <= max_order:
                yield random_sssten(order=k, dim=n, seed=10*k + n)
                # Also a sparser tensor, where some indices are never touched
                yield random_sssten(order=k, dim=n, nnz=2, seed=10*k + n + 1)

    @pytest.fixture
    def edge_example(self):
        return SSSTensor({(0, 0, 1): 3.0}, cubical_dimension=2)

    @pytest.fixture
    def x_example(self):
        return np.array([2., 5.])

# %% [markdown]
# ## A single hyperedge by hand
#
# The edge $(0,0,1)$ with weight 3 stands for $A_{001} = A_{010} = A_{100} = 3$. With $x = (2, 5)$:
# - $(Ax)_{00} = A_{001} x_1 = 15$, $(Ax)_{01} = A_{010} x_0 = 6$, $(Ax)_{11} = 0$
# - $(Ax^2)_0 = 2 A_{001} x_0 x_1 = 60$, $(Ax^2)_1 = A_{100} x_0^2 = 12$
# - $Ax^3 = 3 A_{001} x_0^2 x_1 = 180$

    # %%
    def test_single_edge(self, edge_example, x_example):
        x = x_example
        edge = ((0, 0, 1), 3.0)
        assert contract_edge(edge, x, 1) == {(0, 1): 6.0, (0, 0): 15.0}
        assert contract_edge(edge, x, 2) == {(0,): 60.0, (1,): 12.0}
        assert contract_edge(edge, x, 3) == {(): 180.0}
        assert dict(contract_edge_k_1(edge, x)) == {(0,): 60.0, (1,): 12.0}

    # %%
    def test_regression_order3_dim2(self, edge_example, x_example):
        A, x = edge_example, x_example

        Y = contract(A, x, 1)
        assert sp.issparse(Y)
        assert Y.shape == (2, 2)
        assert np.array_equal(Y.toarray(), [[15., 6.], [6., 0.]])

        y = contract(A, x, 2)
        assert isinstance(y, np.ndarray)
        assert np.array_equal(y, [60., 12.])
        assert np.array_equal(contract_k_1(A, x), [60., 12.])

        s = contract(A, x, 3)
        assert np.ndim(s) == 0
        assert s == 180.

# %% [markdown]
# ## Output types
#
# The type of the result depends only on the residual order.

    # %%
    def test_output_types(self):
        x = np.arange(1., 4.)
        A = random_sssten(order=5, dim=3, seed=1)
        assert isinstance(contract(A, x, 1), SSSTensor)
        assert contract(A, x, 1).order == 4
        assert contract(A, x, 1).cubical_dimension == 3
        assert isinstance(contract(A, x, 2), SSSTensor)
        assert contract(A, x, 2).order == 3
        assert isinstance(contract(A, x, 3), sp.csc_array)
        assert isinstance(contract(A, x, 4), np.ndarray)
        assert contract(A, x, 4).shape == (3,)
        assert np.ndim(contract(A, x, 5)) == 0

    # %%
    def test_empty_tensor(self):
        x = np.ones(3)
        A = SSSTensor({}, cubical_dimension=3, order=3)
        assert contract(A, x, 3) == 0
        assert np.array_equal(contract(A, x, 2), np.zeros(3))
        assert contract(A, x, 1).nnz == 0
        assert np.array_equal(contract_k_1(A, x), np.zeros(3))

    # %%
    def test_matrix_is_mirrored(self):
        x = np.array([1., -2., 0.5])
        A = random_sssten(order=3, dim=3, seed=3)
        M = contract(A, x, 1)
        assert np.allclose(M.toarray(), M.toarray().T)
        # Diagonal entries are stored once, off-diagonal ones twice
        n_diag = sum(1 for i, j in zip(*M.nonzero()) if i == j)
        n_offdiag = sum(1 for i, j in zip(*M.nonzero()) if i != j)
        assert n_offdiag % 2 == 0
        assert n_diag <= 3

# %% [markdown]
# ## Agreement with the dense contraction
#
# The same tensor, materialized as a dense array, must give the same result for every valid number of modes.

    # %%
    def test_agrees_with_dense(self):
        for A in self.get_test_tensors():
            Ad = A.todense()
            x = np.random.RandomState(A.order).normal(size=A.cubical_dimension)
            for m in range(1, A.order + 1):
                assert np.allclose(as_dense(contract(A, x, m)),
                                   dense_contract(Ad, x, m)), (str(A), m)

    # %%
    def test_agrees_with_einsum(self):
        A = random_sssten(order=3, dim=4, seed=7)
        Ad = A.todense()
        x = np.linspace(-1, 1, 4)
        assert np.allclose(contract(A, x, 1).toarray(), np.einsum('ijk,k->ij', Ad, x))
        assert np.allclose(contract(A, x, 2), np.einsum('ijk,j,k->i', Ad, x, x))
        assert np.isclose(contract(A, x, 3), np.einsum('ijk,i,j,k->', Ad, x, x, x))

    # %%
    def test_basis_vector_gives_slice(self):
        for A in self.get_test_tensors():
            Ad = A.todense()
            n = A.cubical_dimension
            for i in range(n):
                e_i = np.zeros(n)
                e_i[i] = 1.
                assert np.allclose(as_dense(contract(A, e_i, 1)), Ad[i])

# %% [markdown]
# ## Fast path for $A x^{k-1}$

    # %%
    def test_contract_k_1_matches_general(self):
        for A in self.get_test_tensors():
            if A.order < 2:
                continue
            x = np.random.RandomState(A.nnz).normal(size=A.cubical_dimension)
            assert np.allclose(contract_k_1(A, x), contract(A, x, A.order - 1))

    # %%
    def test_contract_edge_k_1_matches_contract_edge(self):
        x = np.array([0.3, -1.2, 2.0, 0.7])
        for indices in [(0, 1), (1, 1), (0, 0, 0), (0, 1, 1, 3), (0, 0, 2, 2, 2), (0, 1, 2, 3)]:
            edge = (indices, 1.5)
            fast = sst.reduce_edges(contract_edge_k_1(edge, x))
            general = contract_edge(edge, x, len(indices) - 1)
            assert fast.keys() == general.keys()
            for key in fast:
                assert np.isclose(fast[key], general[key])

# %% [markdown]
# ## Full contraction

    # %%
    def test_full_contraction_independent_of_edge_order(self):
        x = np.array([0.5, -1., 2.])
        A = random_sssten(order=4, dim=3, seed=4)
        B = SSSTensor(dict(reversed(list(A.items()))),
                      cubical_dimension=A.cubical_dimension, order=A.order)
        assert list(A.keys()) != list(B.keys())
        assert np.isclose(contract(A, x, 4), contract(B, x, 4))

    # %%
    def test_full_contraction_counts_multiplicities(self):
        # Σ over all dense components of A_I x^I with x = 1 is Σ_edges γ_I w_I
        A = random_sssten(order=4, dim=3, seed=5)
        expected = sum(sst.utils.permutation_count(I) * w for I, w in A.items())
        assert np.isclose(contract(A, np.ones(3), 4), expected)

# %% [markdown]
# ## Scalar types
#
# Weights and vectors are not coerced: integer inputs give exact integer results, complex inputs complex results.

    # %%
    def test_integer_weights(self):
        A = random_sssten(order=3, dim=3, seed=6, dtype=int)
        x = np.array([1, -2, 3])
        Ad = A.todense()
        for m in (1, 2, 3):
            res = as_dense(contract(A, x, m))
            assert res.dtype.kind == 'i'
            assert np.array_equal(res, dense_contract(Ad, x, m))
        assert contract_k_1(A, x).dtype.kind == 'i'

    # %%
    def test_complex_weights(self):
        A = random_sssten(order=3, dim=3, seed=8, dtype=complex)
        x = np.array([1., 0.5j, -1.])
        Ad = A.todense()
        assert A.dtype.kind == 'c'
        for m in (1, 2, 3):
            assert np.allclose(as_dense(contract(A, x, m)), dense_contract(Ad, x, m))
        assert np.allclose(contract_k_1(A, x), dense_contract(Ad, x, 2))

# %% [markdown]
# ## Argument validation

    # %%
    def test_invalid_arguments(self, edge_example, x_example):
        A, x = edge_example, x_example
        with pytest.raises(ValueError):
            contract(A, x, 0)
        with pytest.raises(ValueError):
            contract(A, x, 4)
        with pytest.raises(ValueError):
            contract(A, x, -1)
        with pytest.raises(ValueError):
            contract(A, np.ones(3), 1)
        with pytest.raises(ValueError):
            contract(A, np.ones((2, 2)), 1)
        with pytest.raises(ValueError):
            contract_k_1(A, np.ones(3))
        with pytest.raises(ValueError):
            contract_k_1(SSSTensor({(1,): 2.}), x)
        with pytest.raises(TypeError):
            contract(A, x, 1.5)
        with pytest.raises(TypeError):
            contract(A.edges, x, 1)

    # %%
    def test_does_not_densify(self):
        A = random_sssten(order=4, dim=3, seed=9)
        x = np.ones(3)
        with does_not_warn(UserWarning):
            for m in range(1, 5):
                contract(A, x, m)
            contract_k_1(A, x)
