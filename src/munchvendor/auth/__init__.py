from munchvendor.auth.flows import AuthFlows, FlowStep, FormOutcome
from munchvendor.auth.forms import LoginForm, SignupForm, password_strength

__all__ = [
    "AuthFlows",
    "FlowStep",
    "FormOutcome",
    "LoginForm",
    "SignupForm",
    "password_strength",
]
