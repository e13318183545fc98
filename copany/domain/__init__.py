"""Pure domain logic with no database or framework dependencies."""
