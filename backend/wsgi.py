from phone_pos import create_app

app = create_app()
