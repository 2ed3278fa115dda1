"""
Design matrices for a categorical covariate.
"""

import numpy as np
import pandas as pd
from typing import Optional


def dummy_design(
    factor,
    reference=None,
    intercept: bool = True,
    prefix: Optional[str] = None,
) -> pd.DataFrame:
    """
    Dummy-code a categorical covariate (e.g. developmental stage).

    Parameters
    ----------
    factor : array-like or pandas Series/Categorical
        One level per sample
    reference : optional
        Baseline level (default: first level). Ignored when
        intercept is False.
    intercept : bool
        True: treatment coding, an 'Intercept' column plus one
        indicator per non-reference level, so coefficients are the
        reference mean and differences from it.
        False: cell-means coding, one indicator per level.
    prefix : str, optional
        Column name prefix (default: the Series name, if any)

    Returns
    -------
    DataFrame
        n × p design, indexed like `factor` when it is a Series

    Examples
    --------
    >>> stage = ['E10', 'E10', 'E12', 'E12', 'P0', 'P0']
    >>> dummy_design(stage).columns.tolist()
    ['Intercept', 'E12', 'P0']
    """
    if isinstance(factor, pd.Series):
        index = factor.index
        if prefix is None and factor.name is not None:
            prefix = str(factor.name)
        values = factor
    else:
        index = None
        values = pd.Series(np.asarray(factor))

    if values.isna().any():
        raise ValueError("factor contains missing values")

    if isinstance(values.dtype, pd.CategoricalDtype):
        cat = values.cat.remove_unused_categories()
    else:
        # Levels in order of first appearance
        cat = values.astype(pd.CategoricalDtype(pd.unique(values)))

    levels = list(cat.cat.categories)
    if reference is not None and intercept:
        if reference not in levels:
            raise ValueError(f"reference level {reference!r} not in factor levels {levels}")
        levels = [reference] + [lv for lv in levels if lv != reference]
        cat = cat.cat.reorder_categories(levels)

    dummies = pd.get_dummies(
        cat,
        prefix=prefix,
        prefix_sep='',
        drop_first=intercept,
        dtype=float,
    )
    dummies.columns = [str(c) for c in dummies.columns]

    if intercept:
        dummies.insert(0, 'Intercept', 1.0)

    if index is not None:
        dummies.index = index
    else:
        dummies.index = pd.RangeIndex(len(dummies))
    return dummies
