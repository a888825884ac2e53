from inventorylock.main import app

app(prog_name="invlock")
