"""Life Certificate verification agent."""
