"""Discrete-ordinates transport kernels, a subdomain sweep and sweep scheduling."""

__version__ = "0.1.0"

__all__ = ["moments", "sweep_kernel", "parallel_comm"]