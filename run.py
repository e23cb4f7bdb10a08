import logging
import signal
import sys
import threading

import click
from flask.cli import FlaskGroup

from logbridge import create_app
from config import Config
from logbridge.extensions import mongo
from logbridge.auth import AWS_READ, INPUTS_CREATE, INPUTS_READ

# Setup the main logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
app_logger = logging.getLogger('logbridge.run')


def make_app(*args, **kwargs):
    return create_app(Config)


cli = FlaskGroup(create_app=make_app)


def require_mongo(app):
    if not app.config.get('MONGO_URI'):
        raise click.ClickException("MONGO_URI is not configured")


@cli.command("serve")
@click.option('--host', default='0.0.0.0', show_default=True)
@click.option('--port', type=int, default=None, help='Defaults to the PORT setting.')
def serve_command(host, port):
    """Run the REST API."""
    app = create_app(Config)
    app_logger.info("Starting Flask server...")
    app.run(
        host=host,
        port=port or app.config['PORT'],
        debug=app.config['DEBUG'],
        use_reloader=False
    )


@cli.command("init-db")
def init_db():
    """Initialize the database."""
    from logbridge import init_mongodb
    app = create_app(Config)
    require_mongo(app)
    app_logger.info("Initializing database...")
    init_mongodb(app)
    app_logger.info("Database initialized successfully")


@cli.command("health-check")
def health_check_command():
    """Check the health of the MongoDB connection."""
    app = create_app(Config)
    require_mongo(app)
    with app.app_context():
        ok = mongo.db.command('ping')['ok'] == 1.0
    click.echo(f"mongodb: {'OK' if ok else 'FAILED'}")
    sys.exit(0 if ok else 1)


@cli.command("create-user")
@click.argument('username')
@click.option('--permission', 'permissions', multiple=True,
              default=(AWS_READ, INPUTS_CREATE, INPUTS_READ), show_default=True)
def create_user_command(username, permissions):
    """Create an API user and print its token once."""
    from logbridge.models.user import User
    app = create_app(Config)
    require_mongo(app)
    with app.app_context():
        if User.get_by_username(username):
            raise click.ClickException(f"User {username} already exists")
        user_uuid, token = User.create(username, permissions)
    click.echo(f"Created user {username} ({user_uuid})")
    click.echo(f"API token: {token}")


@cli.command("launch-paloalto")
@click.option('--bind-address', default=None, help='Defaults to PALO_ALTO_BIND_ADDRESS.')
@click.option('--port', type=int, default=None, help='Defaults to PALO_ALTO_PORT.')
@click.option('--timezone', default=None, help='Firewall time zone, defaults to PALO_ALTO_TIMEZONE.')
@click.option('--store-full-message', is_flag=True, default=False)
def launch_paloalto_command(bind_address, port, timezone, store_full_message):
    """Run a PAN-OS 9.x syslog listener and log decoded messages."""
    from logbridge.inputs import PaloAlto9xInput
    from logbridge.inputs.buffer import InputBuffer

    configuration = {
        'bind_address': bind_address or Config.PALO_ALTO_BIND_ADDRESS,
        'port': port if port is not None else Config.PALO_ALTO_PORT,
        'timezone': timezone or Config.PALO_ALTO_TIMEZONE,
        'store_full_message': store_full_message,
        'max_message_size': Config.SYSLOG_MAX_MESSAGE_SIZE,
        'max_connections': Config.SYSLOG_MAX_CONNECTIONS,
    }
    message_input = PaloAlto9xInput.create(configuration)
    buffer = InputBuffer()
    shutdown = threading.Event()

    def signal_handler(signum, frame):
        app_logger.info("Received shutdown signal")
        shutdown.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    message_input.launch(buffer)
    try:
        while not shutdown.is_set():
            message = buffer.get(timeout=1.0)
            if message is not None:
                app_logger.info(f"{message.get('pan_log_type')} from {message.get('source')}: "
                                f"{message.get('message')}")
    finally:
        message_input.stop()
        app_logger.info(f"Input stats: {message_input.get_stats()}")


if __name__ == "__main__":
    cli()
