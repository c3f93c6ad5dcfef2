"""
Modeling layer: model specifications, resampling and workflows.

A workflow pairs a recipe with a model; workflow sets evaluate many such
pairs under the same resamples.
"""
