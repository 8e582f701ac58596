"""Classification service backends and prompts"""
