"""Owner directory used to resolve reminder addresses."""
