"""Local collaborators — the git checkout and the scripts tree it holds."""
