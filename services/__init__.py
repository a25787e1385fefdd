"""Service implementations for the reports cache domain."""
