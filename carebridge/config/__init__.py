from carebridge.config.settings import SmsConfigError, load_dispatcher_config

__all__ = ["SmsConfigError", "load_dispatcher_config"]
