from keel.cli import app

app()
