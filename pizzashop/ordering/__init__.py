# pizzashop/ordering/__init__.py
