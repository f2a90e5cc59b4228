"""HTTP surface for protocol generation."""
