from margarita import create_app

app = create_app()
