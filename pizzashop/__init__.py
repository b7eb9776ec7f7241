# pizzashop/__init__.py
