# Cell decryption
from s63.cell.decrypter import CellDecrypter, decrypt_into, depad

__all__ = ["CellDecrypter", "decrypt_into", "depad"]
