from app.hoa import create_app

app = create_app()
