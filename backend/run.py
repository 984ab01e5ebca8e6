from rps_helper import create_app, socketio
from rps_helper.listener import start_worker

app = create_app()

if __name__ == '__main__':
    start_worker(app)
    socketio.run(app, host='0.0.0.0')
