"""Fixed category taxonomy for XML sources (no discoverable category endpoint)."""
from __future__ import annotations

# (type_id, type_pid, type_name); type_pid 0 marks a top-level category
XML_CATEGORIES: list[tuple[int, int, str]] = [
    (1, 0, "电影片"),
    (2, 0, "连续剧"),
    (3, 0, "综艺片"),
    (4, 0, "动漫片"),
    (6, 1, "动作片"),
    (7, 1, "喜剧片"),
    (8, 1, "爱情片"),
    (9, 1, "科幻片"),
    (10, 1, "恐怖片"),
    (11, 1, "剧情片"),
    (12, 1, "战争片"),
    (13, 2, "国产剧"),
    (14, 2, "香港剧"),
    (15, 2, "韩国剧"),
    (16, 2, "欧美剧"),
    (21, 2, "台湾剧"),
    (22, 2, "日本剧"),
    (23, 2, "海外剧"),
    (24, 2, "泰国剧"),
    (25, 3, "大陆综艺"),
    (26, 3, "港台综艺"),
    (27, 3, "日韩综艺"),
    (28, 3, "欧美综艺"),
    (29, 4, "国产动漫"),
    (30, 4, "日韩动漫"),
    (31, 4, "欧美动漫"),
    (32, 4, "港台动漫"),
    (33, 4, "海外动漫"),
    (20, 1, "记录片"),
    (34, 1, "伦理片"),
    (36, 2, "短剧"),
    (37, 1, "动画片"),
]
