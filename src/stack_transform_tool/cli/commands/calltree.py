"""
调用树命令模块
"""

import time

from ..validators import validate_transform_string, parse_output_formats, validate_max_depth
from ...call_tree import CallTree
from ...presenter import build_call_tree_rows, print_markdown_table, generate_output_files
from ...transforms import apply_transform_stack
from .apply import load_profile_and_thread, resolve_default_category


class CallTreeCommand:
    """调用树命令处理器"""

    def run(self, args) -> int:
        """应用 transform 后输出调用树"""
        print(f"=== 调用树 ===")
        print(f"文件: {args.file}")
        print(f"Transform: {args.transforms if args.transforms else '无'}")
        print(f"最大深度: {args.max_depth if args.max_depth is not None else '不限制'}")
        print(f"输出格式: {args.output_format}")
        print(f"输出目录: {args.output_dir}")
        print()

        try:
            transforms = validate_transform_string(args.transforms)
            output_formats = parse_output_formats(args.output_format)
            max_depth = validate_max_depth(args.max_depth)
            profile, thread_index = load_profile_and_thread(args)
        except (ValueError, FileNotFoundError) as e:
            print(f"错误: {e}")
            return 1

        start_time = time.time()
        default_category = resolve_default_category(args, profile)
        thread = apply_transform_stack(profile.threads[thread_index], transforms, default_category)
        call_tree = CallTree.from_thread(thread, default_category)
        rows = build_call_tree_rows(call_tree, max_depth)
        print(f"调用树共 {len(rows)} 个节点")

        if args.print_markdown:
            print_markdown_table(rows, f"调用树: {thread.name}")

        base_name = f"call_tree_{thread_index}"
        generated_files = generate_output_files(rows, args.output_dir, base_name, output_formats)

        print(f"\n分析完成，总耗时: {time.time() - start_time:.2f} 秒")
        print("\n生成的文件:")
        for file_path in generated_files:
            print(f"  {file_path}")
        return 0
