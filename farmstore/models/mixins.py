"""Behaviour shared by the account models."""
from werkzeug.security import generate_password_hash, check_password_hash


class PasswordMixin:
    """scrypt password hashing for models with a password_hash column."""
    
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password, method='scrypt')
    
    def check_password(self, password: str) -> bool:
        # Accounts created without a password can never log in
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)
