"""
pymlm: multi-response linear models with Empirical Bayes moderation.

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .mlm import mlm, summarize, MultiResponseLinearModel
from .summary import FitResult, SummaryResult
from .ebayes import ebayes, EmpiricalBayesShrinkage, ShrinkageResult
from .design import dummy_design
from .compare import fit_each, compare_summaries, cross_validate, ComparisonReport
from .errors import (
    PyMLMError,
    SingularDesignError,
    InvalidResponseError,
    DimensionMismatchError,
    ShrinkageError,
)
from ._config import set_backend

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'mlm',
    'summarize',
    'MultiResponseLinearModel',
    'FitResult',
    'SummaryResult',
    'ebayes',
    'EmpiricalBayesShrinkage',
    'ShrinkageResult',
    'dummy_design',
    'fit_each',
    'compare_summaries',
    'cross_validate',
    'ComparisonReport',
    'PyMLMError',
    'SingularDesignError',
    'InvalidResponseError',
    'DimensionMismatchError',
    'ShrinkageError',
    'set_backend',
    'get_backend',
    'list_available_backends',
]
