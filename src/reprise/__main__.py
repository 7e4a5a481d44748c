from reprise.interface.cli import app

app(prog_name="reprise")
