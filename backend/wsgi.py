from simdesk import create_app

app = create_app()
