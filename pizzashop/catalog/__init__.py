# pizzashop/catalog/__init__.py
