from sleet.main import app

app(prog_name="sleet")
