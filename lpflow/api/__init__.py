"""HTTP API for the liquidity pipeline."""
