# Flask application factory

import logging
import os
from datetime import timedelta

from flask import Flask, jsonify, request, redirect
from sqlalchemy.exc import SQLAlchemyError

from communityhub.extensions import db, socketio, login_manager, SOCKETIO_OPTIONS
from config import init_upload_folders


def create_app(config=None):
    # Create and configure Flask application
    # `config` may be a mapping or an object; it is applied over config.py
    flask_app = Flask(__name__)

    flask_app.config.from_object('config')
    if isinstance(config, dict):
        flask_app.config.from_mapping(config)
    elif config is not None:
        flask_app.config.from_object(config)

    # Sessions expire a fixed time after login, activity does not extend them
    flask_app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=flask_app.config['SESSION_LIFETIME_HOURS'])
    flask_app.config['SESSION_REFRESH_EACH_REQUEST'] = False
    flask_app.config['UPLOAD_FOLDER'] = os.path.abspath(flask_app.config['UPLOAD_FOLDER'])

    _configure_logging(flask_app)

    # Initialize extensions
    db.init_app(flask_app)
    socketio.init_app(flask_app, async_mode=flask_app.config['SOCKETIO_ASYNC_MODE'], **SOCKETIO_OPTIONS)
    login_manager.init_app(flask_app)

    _install_services(flask_app)

    # Return JSON 401 for API requests when not authenticated
    @login_manager.unauthorized_handler
    def _unauthorized():
        if request.path.startswith('/api/') or request.is_json:
            return jsonify({'error': 'Not authenticated'}), 401
        return redirect('/')

    # Set up login manager
    @login_manager.user_loader
    def load_member(member_id):
        from communityhub.models import Member
        member = db.session.get(Member, member_id)
        # Deactivated members lose their session on the next request
        if member is None or not member.is_active:
            return None
        return member

    _register_error_handlers(flask_app)

    # Create upload folder
    init_upload_folders(flask_app.config['UPLOAD_FOLDER'])

    # Register blueprints
    from communityhub.routes import auth_bp, main_bp, api_bp
    flask_app.register_blueprint(auth_bp)
    flask_app.register_blueprint(main_bp)
    flask_app.register_blueprint(api_bp)

    # Bind socket handlers to this app's server
    from communityhub.sockets import register_socket_handlers
    register_socket_handlers(socketio)

    # Create database tables and seed if needed
    with flask_app.app_context():
        _init_database(flask_app)
        _setup_primary_admin(flask_app)

    return flask_app


def _configure_logging(flask_app):
    level = getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('communityhub').setLevel(level)
    flask_app.logger.setLevel(level)


def _install_services(flask_app):
    # Process-scoped state lives on the app, so each app (and each test) gets its own
    from communityhub.functions.otp import OtpStore, WatiOtpSender
    from communityhub.sockets.hub import BroadcastHub
    from communityhub.sockets.presence import PresenceTracker

    def _send(sid, envelope):
        socketio.emit('message', envelope, to=sid)

    cfg = flask_app.config
    flask_app.extensions['communityhub.hub'] = BroadcastHub(_send)
    flask_app.extensions['communityhub.presence'] = PresenceTracker()
    flask_app.extensions['communityhub.otp_store'] = OtpStore(ttl_seconds=cfg['OTP_TTL_SECONDS'])
    flask_app.extensions['communityhub.otp_sender'] = WatiOtpSender(
        cfg['WATI_API_ENDPOINT'], cfg['WATI_API_TOKEN'], cfg['WATI_TEMPLATE_NAME'],
        timeout=cfg['WATI_TIMEOUT_SECONDS'],
    )


def _register_error_handlers(flask_app):
    from communityhub.functions.errors import ChatError, CollaboratorFailure

    @flask_app.errorhandler(ChatError)
    def _chat_error(e):
        return jsonify(e.to_dict()), e.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def _storage_error(e):
        db.session.rollback()
        flask_app.logger.error('[STORAGE] %s', e)
        return _chat_error(CollaboratorFailure('Storage unavailable, please try again'))

    @flask_app.errorhandler(413)
    def _too_large(e):
        return jsonify({'error': 'File too large'}), 413


def _init_database(flask_app):
    # Initialize database tables
    from communityhub import models  # noqa: F401

    try:
        db.create_all()
    except SQLAlchemyError as e:
        flask_app.logger.error('[DATABASE] Failed to create tables: %s', e)
        raise


def _setup_primary_admin(flask_app):
    # Create the primary admin if it doesn't exist
    from communityhub.models import Member

    phone = flask_app.config['PRIMARY_ADMIN_PHONE']
    admin = Member.query.filter_by(phone=phone).first()
    if admin is None:
        db.session.add(Member(name='Admin', phone=phone, role='admin', is_active=True))
        db.session.commit()
        flask_app.logger.info('[SEED] Created primary admin with phone %s', phone)
    elif admin.role != 'admin':
        admin.role = 'admin'
        db.session.commit()
        flask_app.logger.info('[SEED] Restored admin role for primary admin %s', phone)
