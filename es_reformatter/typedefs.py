JSSource = str
NodeType = str
"""ESTree name of a node, e.g. IfStatement"""
PositionLabel = str
"""Role a token plays in its construct, e.g. IfOpeningBrace, which is what the whitespace/line break tables are keyed by"""
OptionsMapping = dict
"""User supplied options in the nested dict form, as loaded from JSON"""
