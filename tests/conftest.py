pytest_plugins = ["tests.fixtures.ticket_fixtures"]
