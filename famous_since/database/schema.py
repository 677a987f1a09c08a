schema = [
    {"table_name":"user_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "name":"TEXT NOT NULL",
        "email":"TEXT UNIQUE NOT NULL",
        "password":"TEXT NOT NULL",
        "role":"TEXT DEFAULT 'CLIENT' CHECK (role IN ('CLIENT', 'ADMIN'))",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"product_type_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "name":"TEXT NOT NULL",
        "base_price":"FLOAT DEFAULT 28.0",
        "active":"BOOL DEFAULT TRUE",
        "is_default":"BOOL DEFAULT FALSE",
        "is_branded_item":"BOOL DEFAULT FALSE",
        "stripe_account_id":"TEXT",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"product_type_image_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "product_type_id":"INTEGER NOT NULL",
        "image_path":"TEXT NOT NULL",
        "vertical_offset":"INTEGER DEFAULT 0",
        "is_default_model":"BOOL DEFAULT FALSE",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "FOREIGN KEY":[{
                "key":"product_type_id",
                "parent_table":"product_type_table",
                "parent_key":"id",
                "instruction":"ON DELETE CASCADE"
            }]
        }},
    {"table_name":"product_size_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "product_type_id":"INTEGER NOT NULL",
        "size":"TEXT NOT NULL",
        "size_order":"INTEGER DEFAULT 0",
        "UNIQUE":["product_type_id", "size"],
        "FOREIGN KEY":[{
                "key":"product_type_id",
                "parent_table":"product_type_table",
                "parent_key":"id",
                "instruction":"ON DELETE CASCADE"
            }]
        }},
    {"table_name":"product_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "name":"TEXT NOT NULL",
        "description":"TEXT NOT NULL",     # the customer's "famous for" text
        "base_price":"FLOAT DEFAULT 0.0",
        "front_image_url":"TEXT",
        "back_image_url":"TEXT",
        "application":"TEXT DEFAULT 'Screen Press'",
        "garment":"TEXT DEFAULT 'T-Shirt'",
        "product_type_id":"INTEGER",
        "stripe_account_id":"TEXT",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP",
        "UNIQUE":["description"],
        "FOREIGN KEY":[{
                "key":"product_type_id",
                "parent_table":"product_type_table",
                "parent_key":"id",
                "instruction":"ON DELETE SET NULL"
            }]
        }},
    {"table_name":"product_variant_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "product_id":"INTEGER NOT NULL",
        "size":"TEXT NOT NULL",
        "color":"TEXT NOT NULL",
        "price":"FLOAT DEFAULT 0.0",
        "stock_quantity":"INTEGER DEFAULT 100",
        "front_image_url":"TEXT",
        "back_image_url":"TEXT",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP",
        "UNIQUE":["product_id", "size", "color"],
        "FOREIGN KEY":[{
                "key":"product_id",
                "parent_table":"product_table",
                "parent_key":"id",
                "instruction":"ON DELETE CASCADE"
            }]
        }},
    {"table_name":"homepage_display_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "position":"INTEGER NOT NULL UNIQUE",
        "product_id":"INTEGER",      # NULL -> random fill at render time
        "updated_at":"TIMESTAMP",
        "FOREIGN KEY":[{
                "key":"product_id",
                "parent_table":"product_table",
                "parent_key":"id",
                "instruction":"ON DELETE SET NULL"
            }]
        }},
    {"table_name":"exception_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "word":"TEXT UNIQUE NOT NULL",
        "reason":"TEXT",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP"
        }},
    {"table_name":"order_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "payment_intent_id":"TEXT UNIQUE",
        "customer_email":"TEXT NOT NULL",
        "customer_name":"TEXT",
        "shipping_address":"TEXT DEFAULT '{}'",
        "billing_address":"TEXT DEFAULT '{}'",
        "shipping_method":"TEXT DEFAULT 'standard'",
        "subtotal":"FLOAT DEFAULT 0.0",
        "tax":"FLOAT DEFAULT 0.0",
        "shipping_cost":"FLOAT DEFAULT 0.0",
        "discount":"FLOAT DEFAULT 0.0",
        "total_amount":"FLOAT DEFAULT 0.0",
        "status":"TEXT DEFAULT 'pending' CHECK (status IN ('pending', 'completed', 'cancelled'))",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"order_item_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "order_id":"INTEGER NOT NULL",
        "product_id":"INTEGER",
        "variant_id":"INTEGER",
        "name":"TEXT NOT NULL",
        "size":"TEXT",
        "color":"TEXT",
        "quantity":"INTEGER DEFAULT 1",
        "unit_price":"FLOAT DEFAULT 0.0",
        "customization":"TEXT DEFAULT '{}'",
        "FOREIGN KEY":[{
                "key":"order_id",
                "parent_table":"order_table",
                "parent_key":"id",
                "instruction":"ON DELETE CASCADE"
            },
            {
                "key":"product_id",
                "parent_table":"product_table",
                "parent_key":"id",
                "instruction":"ON DELETE SET NULL"
            },
            {
                "key":"variant_id",
                "parent_table":"product_variant_table",
                "parent_key":"id",
                "instruction":"ON DELETE SET NULL"
            }]
        }},
    {"table_name":"site_config_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "key":"TEXT NOT NULL UNIQUE",
        "value":"BOOL DEFAULT FALSE",
        "description":"TEXT",
        "editable":"BOOL DEFAULT TRUE",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"stripe_connect_account_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "account_id":"TEXT UNIQUE NOT NULL",
        "email":"TEXT NOT NULL",
        "business_name":"TEXT NOT NULL",
        "business_type":"TEXT NOT NULL",
        "onboarding_complete":"BOOL DEFAULT FALSE",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"subscription_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "stripe_subscription_id":"TEXT UNIQUE NOT NULL",
        "stripe_customer_id":"TEXT",
        "price_id":"TEXT",
        "status":"TEXT NOT NULL",
        "current_period_start":"TIMESTAMP",
        "current_period_end":"TIMESTAMP",
        "cancel_at_period_end":"BOOL DEFAULT FALSE",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"waitlist_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "first_name":"TEXT NOT NULL",
        "last_name":"TEXT NOT NULL",
        "email":"TEXT UNIQUE NOT NULL",
        "subscribed_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP"
        }},
]
