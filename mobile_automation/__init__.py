"""
Mobile end-to-end UI automation: Gherkin steps driving Android and iOS apps
through Appium, plus REST helpers for backend test data.
"""
