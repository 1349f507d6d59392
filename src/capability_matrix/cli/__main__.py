"""Usage: python -m capability_matrix.cli"""

from capability_matrix.cli.app import app

app()
