from compass.schemas.base import SuccessResponse


def test_success_response_timestamp_is_timezone_aware():
    response = SuccessResponse(message="ok")

    assert response.timestamp.tzinfo is not None
    assert response.timestamp.utcoffset().total_seconds() == 0
