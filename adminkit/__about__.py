__version__ = "0.1.0"
__description__ = "adminkit : request-scoped admin resource data access for Flask-SQLAlchemy"
