from nailstudio import create_app

app = create_app()
