"""MatrixMint: proof-verified RFP compliance analysis with a resilient execution ladder."""

from matrixmint.version import __version__

__all__ = ["__version__"]
