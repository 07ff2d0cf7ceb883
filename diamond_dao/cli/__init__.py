"""Diamond DAO command-line tools."""
