"""Services for the drafting study backend."""
