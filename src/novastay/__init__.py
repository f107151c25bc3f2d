"""
NovaStay: ядро распределения номеров отеля.

Номера, бронирования и блокировки хранятся в общем хранилище
документов; шахматка, финансовые итоги и дашборд пересчитываются
из последнего снимка при каждом его изменении.
"""

__version__ = "0.1.0"
