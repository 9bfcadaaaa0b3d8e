pytest_plugins = [
    "tests.fixtures.store_fixtures",
    "tests.fixtures.app_fixtures",
]
