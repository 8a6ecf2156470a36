# Route modules, included by app.create_app()
