from cardapio.utils.documents import format_cpf, format_phone, only_digits

__all__ = ["only_digits", "format_cpf", "format_phone"]
