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
# # Example usage

# %%
from ssstensor import SSSTensor, contract, contract_k_1, contract_multi

import numpy as np

# %% [markdown]
# A hypergraph on 4 nodes with three 3-node hyperedges; one node appears twice in the last edge.

# %%
A = SSSTensor({(0, 1, 2): 1.0, (1, 2, 3): 0.5, (0, 0, 3): 2.0}, cubical_dimension=4)
print(A)

x = np.random.rand(4)

# %%
# Sparse symmetric matrix
print(contract(A, x, 1).toarray())

# %%
# Vector; the fast path gives the same
print(contract(A, x, 2))
print(contract_k_1(A, x))

# %%
# Scalar
print(contract(A, x, 3))

# %%
# Different vectors per mode
u, v = np.random.rand(4), np.random.rand(4)
print(contract(A, u, v))
print(contract_multi(A, np.column_stack([u, v, x])))
