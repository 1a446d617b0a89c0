"""Platform administration endpoints. Every route requires an admin."""
