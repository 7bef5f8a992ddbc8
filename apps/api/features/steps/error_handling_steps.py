# features/steps/error_handling_steps.py
import json
from behave import when, then


@when('I send a malformed JSON request to the search endpoint')
def step_malformed_json(ctx):
    """Send malformed JSON to test error handling."""
    # Send raw malformed JSON
    ctx.last_response = ctx.client.post(
        ctx.search_url,
        content='{"filters": {"styles": [}',  # Malformed JSON
        headers={"Content-Type": "application/json"}
    )


@then('I receive a 422 validation error')
def step_422_error(ctx):
    """Verify 422 validation error."""
    assert ctx.last_response.status_code == 422


@then('the response includes validation details')
def step_validation_details(ctx):
    """Verify response includes validation information."""
    error_data = ctx.last_response.json()
    # FastAPI returns validation errors in the 'detail' field
    assert "detail" in error_data


@when('I request search with page size {size:d}')
def step_page_size(ctx, size):
    """Search with an explicit page size."""
    payload = {
        "filters": {},
        "page": {"number": 1, "size": size}
    }
    ctx.last_response = ctx.client.post(ctx.search_url, json=payload)


@then('I receive a 400 error response')
def step_400_error(ctx):
    """Verify 400 status code."""
    assert ctx.last_response.status_code == 400


@then('the error message mentions the maximum page size')
def step_page_size_message(ctx):
    """Verify error payload names the limit."""
    error_data = ctx.last_response.json()
    assert error_data["max_page_size"] == 100
    assert "maximum" in json.dumps(error_data).lower()
