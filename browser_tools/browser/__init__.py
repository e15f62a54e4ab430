"""Browser process lifecycle and CDP sessions."""
