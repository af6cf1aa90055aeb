"""SQLite persistence for import records and the ERP job read model."""
