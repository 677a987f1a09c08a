from famous_since import create_app

app = create_app()

if __name__ == '__main__':
    if app:
        app.run(host=app.config.get('HOST', '0.0.0.0'), port=app.config.get('PORT', 5000))
