"""dep-sweeper: find declared Cargo dependencies that the source never references."""
