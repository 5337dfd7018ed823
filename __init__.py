"""
binforest

Inference for forests of binary decision trees. A forest is a graph of
integer node ids with split tests on the internal nodes and responses on
the leaves; ``RandomForest`` finds the leaf of every sample in every tree
(in parallel over samples), reduces the leaf responses to class
probabilities and picks the most probable label. Forests with the same
problem spec can be merged into one.
"""
