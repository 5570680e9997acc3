from batterywarn.cli import app

app(prog_name="batterywarn")
