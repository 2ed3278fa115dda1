"""
Test GPU backend implementations.

Validates that CUDA backends produce statistically equivalent results to CPU.
"""

import pytest
import numpy as np
import pandas as pd

# Check if PyTorch is available
try:
    import torch
    TORCH_AVAILABLE = torch.cuda.is_available()
except ImportError:
    TORCH_AVAILABLE = False


def expression_data(n_per_stage=4, m=500, seed=42):
    from pymlm import dummy_design

    rng = np.random.default_rng(seed)
    stages = ['E10', 'E11', 'E12', 'E13', 'E14', 'E15', 'E16', 'E17', 'P0']
    stage = pd.Series(np.repeat(stages, n_per_stage), name='stage')
    X = dummy_design(stage)
    n = len(stage)
    Y = rng.normal(8.0, 1.5, size=m) + rng.normal(0, 0.3, size=(n, m))
    return X, pd.DataFrame(Y, columns=[f'probe_{j}' for j in range(m)])


@pytest.mark.skipif(not TORCH_AVAILABLE, reason="PyTorch CUDA not available")
class TestGPUBackends:
    """Test GPU backend QR decomposition and batched solve."""

    def test_backend_creation(self):
        from pymlm._backends.gpu_fp32_backend import PyTorchBackendFP32

        backend = PyTorchBackendFP32()
        assert backend.name == "pytorch_fp32"
        assert backend.precision == "fp32"

        info = backend.get_device_info()
        assert info['backend'] == 'gpu'
        assert info['precision'] == 'fp32'
        assert 'cuda' in info['device']
        print(f"\n✓ GPU Backend: {info['device']}")

    def test_decompose(self):
        from pymlm._backends import get_backend

        X, _ = expression_data()
        cpu_ctx = get_backend('cpu').decompose(X.to_numpy())
        gpu_ctx = get_backend('gpu', use_fp64=False).decompose(X.to_numpy())

        print(f"\nCPU rank: {cpu_ctx.rank}")
        print(f"GPU rank: {gpu_ctx.rank}")

        # Rank must match exactly
        assert cpu_ctx.rank == gpu_ctx.rank
        assert cpu_ctx.has_intercept == gpu_ctx.has_intercept

        # (X'X)^-1 should be close (FP32 tolerance)
        np.testing.assert_allclose(
            cpu_ctx.xtx_inv, gpu_ctx.xtx_inv,
            rtol=1e-4, atol=1e-5,
            err_msg="(X'X)^-1 differs too much"
        )

    def test_full_summary(self):
        from pymlm import summarize

        X, Y = expression_data()
        cpu_res = summarize(X, Y, backend='cpu')
        gpu_res = summarize(X, Y, backend='gpu', use_fp64=False)

        # Coefficients should be statistically equivalent
        # (within a few standard errors)
        coef_diff = np.abs(cpu_res.estimates - gpu_res.estimates)
        max_diff_in_ses = np.max(coef_diff / cpu_res.std_errors)

        print(f"\nMax coef difference: {max_diff_in_ses:.2e} SEs")
        assert max_diff_in_ses < 0.01, "Coefficients differ by too many SEs"

        r2_diff = np.max(np.abs(cpu_res.r_squared - gpu_res.r_squared))
        assert r2_diff < 0.001, f"R² differs by {r2_diff:.6f}"

    def test_rank_deficient(self):
        from pymlm._backends import get_backend
        from pymlm.errors import SingularDesignError

        X, _ = expression_data()
        X = X.to_numpy()
        # Make a column the sum of two others (perfect collinearity)
        X = np.column_stack([X, X[:, 1] + X[:, 2]])

        with pytest.raises(SingularDesignError):
            get_backend('cpu').decompose(X)
        with pytest.raises(SingularDesignError):
            get_backend('gpu', use_fp64=False).decompose(X)


@pytest.mark.skipif(not TORCH_AVAILABLE, reason="PyTorch CUDA not available")
class TestGPUPerformance:
    """Test GPU performance on a whole-array problem."""

    @pytest.mark.slow
    def test_large_problem(self):
        import time
        from pymlm import summarize

        X, Y = expression_data(n_per_stage=10, m=45000)
        print(f"\nLarge problem: n={X.shape[0]}, p={X.shape[1]}, m={Y.shape[1]}")

        start = time.time()
        cpu_res = summarize(X, Y, backend='cpu')
        cpu_time = time.time() - start

        start = time.time()
        gpu_res = summarize(X, Y, backend='gpu', use_fp64=False)
        gpu_time = time.time() - start

        print(f"CPU: {cpu_time:.3f}s")
        print(f"GPU: {gpu_time:.3f}s")
        print(f"Speedup: {cpu_time/gpu_time:.2f}x")

        assert cpu_res.df_residual == gpu_res.df_residual


if __name__ == '__main__':
    pytest.main([__file__, '-v', '-s'])
