"""HTTP adapter for the receipt pipeline."""
