import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, limiter


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        # File handler for errors
        file_handler = RotatingFileHandler(
            'logs/fuel_log.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Fuel Log startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Fuel Log startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # SQLite fallback lives under instance/
    os.makedirs(os.path.join(app.root_path, 'instance'), exist_ok=True)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.vehicles import vehicles_bp

    app.register_blueprint(vehicles_bp)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'error': f'Rate limit exceeded: {error.description}'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description}), error.code


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def fuel():
        """Fuel log maintenance: CSV export/import and statistics."""
        pass

    @fuel.command('export')
    @click.argument('vehicle_id', type=int)
    @click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True),
                  help='Write to this file instead of stdout.')
    def export_csv(vehicle_id, output):
        """Export the fuel log of VEHICLE_ID as CSV."""
        from models.vehicles import Vehicle
        from services.csv_service import CsvService
        if not db.session.get(Vehicle, vehicle_id):
            click.echo(f'ERROR: No vehicle with id {vehicle_id}', err=True)
            return
        text = CsvService.export_vehicle_records(vehicle_id)
        if output:
            with open(output, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
            click.echo(f'SUCCESS: Exported to {output}')
        else:
            click.echo(text, nl=False)

    @fuel.command('import')
    @click.argument('vehicle_id', type=int)
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_csv(vehicle_id, path):
        """Import fill-ups for VEHICLE_ID from the CSV file at PATH."""
        from models.vehicles import Vehicle
        from services.csv_service import CsvService
        if not db.session.get(Vehicle, vehicle_id):
            click.echo(f'ERROR: No vehicle with id {vehicle_id}', err=True)
            return
        with open(path, 'r', encoding='utf-8-sig') as f:
            imported, skipped = CsvService.import_records(vehicle_id, f.read())
        click.echo(f'SUCCESS: Imported {imported} record(s), skipped {skipped}.')

    @fuel.command('rebuild-stats')
    def rebuild_stats():
        """Recompute cached statistics for every vehicle."""
        from services.statistics_service import StatisticsCacheService
        count = StatisticsCacheService.rebuild_all_cache()
        click.echo(f'SUCCESS: Rebuilt statistics for {count} vehicle(s).')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    app.run(host='127.0.0.1', port=5000, debug=True)
