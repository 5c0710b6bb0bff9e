"""Application – event sourcing use-case building blocks (framework-agnostic)."""
