"""Azure DevOps task inventory access."""
