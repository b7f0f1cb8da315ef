from cuemaster import create_app

app = create_app()
