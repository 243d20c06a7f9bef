"""Service layer: business rules, validation orchestration and transactions."""
