"""College attendance tracker."""
