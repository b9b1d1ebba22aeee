"""Package documents — reading and rewriting embedded scripts in ``SDMPackageXML``."""
