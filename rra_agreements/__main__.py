"""Entry point for `python -m rra_agreements`"""

from rra_agreements.cli.main import app

app()
