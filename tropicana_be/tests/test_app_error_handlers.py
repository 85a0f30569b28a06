import pytest
from flask import jsonify
from marshmallow import ValidationError

from tropicana_be.app import create_app
from tropicana_be.config import TestingConfig
from tropicana_be.exceptions import (
    AppException,
    ValidationException,
    InsufficientFundsException,
    ConcurrentSpinException
)
from tropicana_be.error_codes import ErrorCodes


class TestAppErrorHandlers:

    @pytest.fixture(scope="class")
    def app(self):
        """Create and configure a new app instance for each test class."""
        app, _ = create_app(TestingConfig)

        # Define mock routes directly on the app for testing
        @app.route('/test/app_exception')
        def route_app_exception():
            raise AppException(
                error_code="TEST_APP_EXC",
                status_message="This is an AppException",
                status_code=450,
                details={"info": "some app details"},
                action_button={"text": "Click Me", "actionType": "NAVIGATE", "actionPayload": "/home"}
            )

        @app.route('/test/validation_exception')
        def route_validation_exception():
            raise ValidationException(status_message="Invalid input provided", details={"field": "wrong"})

        @app.route('/test/insufficient_funds_exception')
        def route_insufficient_funds_exception():
            raise InsufficientFundsException(status_message="Not enough balance")

        @app.route('/test/concurrent_spin_exception')
        def route_concurrent_spin_exception():
            raise ConcurrentSpinException()

        @app.route('/test/server_side_app_exception')
        def route_server_side_app_exception():
            raise AppException(
                error_code=ErrorCodes.AUTOSPIN_ERROR,
                status_message="Autospin worker failed",
                status_code=500
            )

        @app.route('/test/unhandled_exception')
        def route_unhandled_exception():
            raise ValueError("A generic unhandled error")

        @app.route('/test/method_not_allowed', methods=['GET'])
        def route_method_not_allowed():
            return jsonify(status=True) # GET is fine

        @app.route('/test/marshmallow_validation_error', methods=['POST'])
        def route_marshmallow_error():
            raise ValidationError(message="Marshmallow schema validation failed", field_name="test_field")

        app_context = app.app_context()
        app_context.push()

        yield app # provide the app to the tests

        app_context.pop()

    @pytest.fixture()
    def client(self, app):
        """A test client for the app."""
        return app.test_client()

    def test_app_exception_handler(self, client, caplog):
        response = client.get('/test/app_exception')
        assert response.status_code == 450
        json_data = response.get_json()
        assert json_data['status'] is False
        assert json_data['error_code'] == "TEST_APP_EXC"
        assert json_data['status_message'] == "This is an AppException"
        assert json_data['details'] == {"info": "some app details"}
        assert json_data['action_button'] == {"text": "Click Me", "actionType": "NAVIGATE", "actionPayload": "/home"}
        assert 'request_id' in json_data

        assert any(rec.levelname == 'WARNING' and 'TEST_APP_EXC' in rec.message and json_data['request_id'] in rec.message for rec in caplog.records)

    def test_validation_exception_handler(self, client, caplog):
        response = client.get('/test/validation_exception')
        assert response.status_code == 422
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.VALIDATION_ERROR
        assert json_data['status_message'] == "Invalid input provided"
        assert json_data['details'] == {"field": "wrong"}
        assert any(rec.levelname == 'WARNING' and ErrorCodes.VALIDATION_ERROR in rec.message for rec in caplog.records)

    def test_insufficient_funds_exception_handler(self, client):
        response = client.get('/test/insufficient_funds_exception')
        assert response.status_code == 400
        assert response.get_json()['error_code'] == ErrorCodes.INSUFFICIENT_FUNDS

    def test_concurrent_spin_exception_handler(self, client):
        response = client.get('/test/concurrent_spin_exception')
        assert response.status_code == 409
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.CONCURRENT_SPIN
        assert json_data['status_message'] == "A spin is already in progress"

    def test_server_side_app_exception_logged_as_error(self, client, caplog):
        response = client.get('/test/server_side_app_exception')
        assert response.status_code == 500
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.AUTOSPIN_ERROR
        assert json_data['status_message'] == "Autospin worker failed"
        assert any(rec.levelname == 'ERROR' and ErrorCodes.AUTOSPIN_ERROR in rec.message for rec in caplog.records)

    def test_werkzeug_not_found_handler(self, client, caplog): # Flask's default 404
        response = client.get('/this_route_does_not_exist')
        assert response.status_code == 404
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.NOT_FOUND
        assert json_data['status_message'] == "The requested resource was not found."
        assert json_data['details'] == {'path': '/this_route_does_not_exist'}
        assert any(rec.levelname == 'WARNING' and ErrorCodes.NOT_FOUND in rec.message for rec in caplog.records)

    def test_method_not_allowed_handler(self, client, caplog):
        response = client.post('/test/method_not_allowed') # Call with POST when only GET is allowed
        assert response.status_code == 405
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.METHOD_NOT_ALLOWED
        assert json_data['status_message'] == "Method Not Allowed"
        assert any(rec.levelname == 'WARNING' and ErrorCodes.METHOD_NOT_ALLOWED in rec.message for rec in caplog.records)

    def test_marshmallow_validation_error_handler(self, client, caplog):
        response = client.post('/test/marshmallow_validation_error', json={})
        assert response.status_code == 422
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.VALIDATION_ERROR
        assert json_data['status_message'] == "Input validation failed."
        assert json_data['details']['errors'] == {"test_field": ["Marshmallow schema validation failed"]}
        assert any(rec.levelname == 'WARNING' and ErrorCodes.VALIDATION_ERROR in rec.message for rec in caplog.records)

    def test_unhandled_exception_handler(self, client, caplog):
        response = client.get('/test/unhandled_exception')
        assert response.status_code == 500
        json_data = response.get_json()
        assert json_data['error_code'] == ErrorCodes.INTERNAL_SERVER_ERROR
        assert json_data['status_message'] == 'An unexpected internal server error occurred. Please try again later.'
        critical = [rec for rec in caplog.records if rec.levelname == 'CRITICAL']
        assert critical
        assert critical[-1].exc_info[0] is ValueError
