import numpy as np
import pandas as pd

from engine.file_parsers import dataframe_to_rows

DEMO_FILE_NAME = "superstore_demo.csv"

REGIONS = ["Central", "East", "South", "West"]
SEGMENTS = ["Consumer", "Corporate", "Home Office"]
CATEGORIES = {
    "Furniture": ["Bookcases", "Chairs", "Tables"],
    "Office Supplies": ["Binders", "Paper", "Storage"],
    "Technology": ["Accessories", "Machines", "Phones"],
}


def load_demo_dataframe(n_orders: int = 400, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)

    # -----------------------------------------
    # 1. Orders spread over two years
    # -----------------------------------------
    start = pd.Timestamp("2024-01-01")
    order_dates = start + pd.to_timedelta(rng.integers(0, 730, n_orders), unit="D")

    # -----------------------------------------
    # 2. Categorical attributes
    # -----------------------------------------
    categories = rng.choice(list(CATEGORIES), n_orders)
    sub_categories = [rng.choice(CATEGORIES[c]) for c in categories]

    # -----------------------------------------
    # 3. Measures
    # -----------------------------------------
    quantity = rng.integers(1, 10, n_orders)
    unit_price = np.round(rng.lognormal(mean=3.5, sigma=0.9, size=n_orders), 2)
    discount = rng.choice([0.0, 0.1, 0.2, 0.3], n_orders, p=[0.55, 0.2, 0.15, 0.1])
    sales = np.round(quantity * unit_price * (1 - discount), 2)
    profit = np.round(sales * rng.normal(0.12, 0.15, n_orders), 2)

    df = pd.DataFrame({
        "order_id": np.arange(100001, 100001 + n_orders),
        "order_date": order_dates,
        "region": rng.choice(REGIONS, n_orders),
        "segment": rng.choice(SEGMENTS, n_orders),
        "category": categories,
        "sub_category": sub_categories,
        "quantity": quantity,
        "discount": discount,
        "sales": sales,
        "profit": profit,
        "rating": rng.integers(1, 6, n_orders),
    })

    return df.sort_values("order_date").reset_index(drop=True)


def load_demo_dataset(n_orders: int = 400, seed: int = 7) -> list:
    return dataframe_to_rows(load_demo_dataframe(n_orders, seed))
